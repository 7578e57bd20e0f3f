import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from prreview.core.config import (
    DEFAULT_EXCLUDED_EXTENSIONS,
    DEFAULT_EXCLUDED_FILES,
    DEFAULT_REVIEW_EXTENSIONS,
    Settings,
)


class FilterState(str, Enum):
    INCLUDE_OFF = "include_off"
    INCLUDE_ON = "include_on"


def _lowered(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(v.lower() for v in values)


# git C-quotes paths with special characters; non-ASCII bytes become octal escapes
QUOTED_ESCAPE_PATTERN = re.compile(r"\\([0-7]{3}|.)")
QUOTED_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


def unquote_path(path: str) -> str:
    """Decode the escapes of a path taken from inside git's double quotes."""
    decoded = bytearray()
    position = 0

    for match in QUOTED_ESCAPE_PATTERN.finditer(path):
        decoded += path[position : match.start()].encode("utf-8")
        token = match.group(1)
        if len(token) == 3:
            decoded.append(int(token, 8))
        else:
            decoded += QUOTED_ESCAPES.get(token, token).encode("utf-8")
        position = match.end()

    decoded += path[position:].encode("utf-8")
    return decoded.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class InclusionPolicy:
    """
    Decides whether a file's diff section is worth reviewing.

    Exclusion wins over inclusion: lock files and files with an excluded
    extension are rejected even if their extension is also allowed.
    Comparisons are case-insensitive.
    """

    review_extensions: tuple[str, ...] = _lowered(DEFAULT_REVIEW_EXTENSIONS)
    excluded_extensions: tuple[str, ...] = _lowered(DEFAULT_EXCLUDED_EXTENSIONS)
    excluded_files: tuple[str, ...] = _lowered(DEFAULT_EXCLUDED_FILES)

    @classmethod
    def from_settings(cls, settings: Settings) -> "InclusionPolicy":
        return cls(
            review_extensions=_lowered(settings.review_extensions),
            excluded_extensions=_lowered(settings.excluded_extensions),
            excluded_files=_lowered(settings.excluded_files),
        )

    def is_excluded(self, path: str) -> bool:
        name = path.lower()
        basename = name.rsplit("/", 1)[-1]
        return basename in self.excluded_files or name.endswith(self.excluded_extensions)

    def is_reviewable(self, path: str) -> bool:
        return path.lower().endswith(self.review_extensions)

    def includes(self, path: str, old_path: str | None = None) -> bool:
        """Evaluate the policy for one file section."""
        if self.is_excluded(path) or (old_path is not None and self.is_excluded(old_path)):
            return False
        return self.is_reviewable(path)


@dataclass
class DiffSection:
    """The lines of one file in a multi-file diff."""

    path: str
    included: bool
    old_path: str | None = None
    lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


@dataclass
class FilteredDiff:
    """Per-file sections of a diff, in original order, tagged include/exclude."""

    sections: list[DiffSection] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Concatenation of the included sections."""
        return "".join(section.text for section in self.sections if section.included)

    @property
    def size(self) -> int:
        """Byte length of ``text`` (UTF-8)."""
        return len(self.text.encode("utf-8"))

    @property
    def is_empty(self) -> bool:
        return not any(section.included for section in self.sections)

    @property
    def included_paths(self) -> list[str]:
        return [s.path for s in self.sections if s.included]

    @property
    def excluded_paths(self) -> list[str]:
        return [s.path for s in self.sections if not s.included]


class DiffFilter:
    """
    Streaming filter that keeps only the sections of reviewable files.

    Every line is handled in order by a two-state machine. A ``diff --git``
    line starts a new file section and switches the state according to the
    inclusion policy; all lines, the boundary included, are kept only while
    the state is INCLUDE_ON.
    """

    BOUNDARY_PREFIX = "diff --git"
    FILE_HEADER_PATTERN = re.compile(r"^diff --git a/(.*) b/(.*)$")
    QUOTED_FILE_HEADER_PATTERN = re.compile(r'^diff --git "?a/(.*?)"? "?b/(.*?)"?$')

    def __init__(self, policy: InclusionPolicy | None = None) -> None:
        self.policy = policy or InclusionPolicy()

    def parse_header(self, line: str) -> tuple[str, str]:
        """Return (old_path, new_path) for a boundary line."""
        header = line.rstrip("\r")

        match = self.FILE_HEADER_PATTERN.match(header)
        if match:
            return match.group(1), match.group(2)

        match = self.QUOTED_FILE_HEADER_PATTERN.match(header)
        if match:
            return unquote_path(match.group(1)), unquote_path(match.group(2))

        # Unrecognized header: fall back to its last token
        tokens = header.split()
        last = tokens[-1].strip('"') if len(tokens) > 2 else ""
        if last.startswith(("a/", "b/")):
            last = last[2:]
        return last, last

    def filter(self, diff_text: str) -> FilteredDiff:
        """Split a raw unified diff into sections and keep reviewable ones."""
        lines = diff_text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()

        result = FilteredDiff()
        state = FilterState.INCLUDE_OFF
        current: DiffSection | None = None

        for line in lines:
            if line.startswith(self.BOUNDARY_PREFIX):
                old_path, new_path = self.parse_header(line)
                if self.policy.includes(new_path, old_path):
                    state = FilterState.INCLUDE_ON
                else:
                    state = FilterState.INCLUDE_OFF
                current = DiffSection(
                    path=new_path,
                    included=state is FilterState.INCLUDE_ON,
                    old_path=old_path if old_path != new_path else None,
                )
                result.sections.append(current)

            if state is FilterState.INCLUDE_ON and current is not None:
                current.lines.append(line)

        return result
