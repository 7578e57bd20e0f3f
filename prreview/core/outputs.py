"""GitHub Actions step outputs and failure reporting."""

import sys
import uuid
from pathlib import Path
from typing import TextIO

import structlog

logger = structlog.get_logger()


def escape_command_data(value: str) -> str:
    """Escape a message for use in a ``::command::`` workflow line."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionOutputs:
    """
    Collects step outputs and writes them to ``$GITHUB_OUTPUT``.

    Values are always kept in ``values`` so callers (and tests) can inspect
    what was reported. When no output file is configured, outputs are only
    logged.
    """

    def __init__(self, output_path: str | None = None, stream: TextIO | None = None) -> None:
        self.output_path = Path(output_path) if output_path else None
        self.stream = stream or sys.stdout
        self.values: dict[str, str] = {}
        self.failure: str | None = None

    def set_output(self, name: str, value: str) -> None:
        """Record an output and append it to the output file."""
        self.values[name] = value
        logger.info("Set output", name=name, length=len(value))

        if self.output_path is None:
            return

        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        while delimiter in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"

        with self.output_path.open("a", encoding="utf-8") as fh:
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")

    def set_failed(self, message: str) -> None:
        """Report the run as failed with a single error annotation."""
        self.failure = message
        logger.error("Review run failed", error=message)
        self.stream.write(f"::error::{escape_command_data(message)}\n")
        self.stream.flush()
