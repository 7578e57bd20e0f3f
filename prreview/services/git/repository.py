"""Thin async wrapper around the git CLI for the local working copy."""

import asyncio
import time

import structlog

from prreview.core.exceptions import GitCommandError
from prreview.core.metrics import record_git_command

logger = structlog.get_logger()

PULL_REQUEST_REFSPEC = "+refs/pull/*/head:refs/remotes/{remote}/pr/*"


class GitRepository:
    """Runs git commands against a working copy."""

    def __init__(self, path: str = ".", remote: str = "origin") -> None:
        self.path = path
        self.remote = remote

    async def _run(self, *args: str, allowed_exit_codes: tuple[int, ...] = (0,)) -> str:
        """Run ``git <args>`` and return its decoded stdout."""
        command = args[0] if args else "git"
        start_time = time.perf_counter()
        status = "error"

        logger.debug("Running git", args=list(args), cwd=self.path)

        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    "git",
                    *args,
                    cwd=self.path,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise GitCommandError(
                    f"Could not run git: {e}", details={"args": list(args)}
                ) from e

            stdout, stderr = await process.communicate()

            if process.returncode not in allowed_exit_codes:
                stderr_text = stderr.decode("utf-8", errors="replace").strip()
                raise GitCommandError(
                    f"git {command} exited with status {process.returncode}: {stderr_text}",
                    details={
                        "args": list(args),
                        "returncode": process.returncode,
                        "stderr": stderr_text,
                    },
                )

            status = "success"
            return stdout.decode("utf-8", errors="replace")
        finally:
            record_git_command(command, status, time.perf_counter() - start_time)

    async def get_fetch_refspecs(self) -> list[str]:
        """Return the configured fetch refspecs of the remote."""
        # `git config --get-all` exits 1 when the key is unset
        output = await self._run(
            "config", "--get-all", f"remote.{self.remote}.fetch", allowed_exit_codes=(0, 1)
        )
        return [line for line in output.splitlines() if line]

    async def fetch_pull_request_refs(self) -> None:
        """
        Make ``refs/pull/*/head`` resolvable locally.

        Adds the pull request refspec to the remote's fetch configuration
        (once) and fetches the remote, so both sides of any pull request are
        reachable for ``git diff``.
        """
        refspec = PULL_REQUEST_REFSPEC.format(remote=self.remote)

        if refspec not in await self.get_fetch_refspecs():
            await self._run("config", "--local", "--add", f"remote.{self.remote}.fetch", refspec)
            logger.info("Added pull request refspec", remote=self.remote, refspec=refspec)

        await self._run("fetch", self.remote)
        logger.info("Fetched remote history", remote=self.remote)

    async def diff(self, base_sha: str, head_sha: str, context_lines: int = 10) -> str:
        """Return the unified diff between two revisions."""
        return await self._run(
            "diff", "--no-color", "--no-ext-diff", f"-U{context_lines}", base_sha, head_sha
        )
