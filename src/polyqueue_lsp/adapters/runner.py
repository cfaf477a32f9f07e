"""Subprocess port used by every adapter.

Adapters never spawn processes themselves: they hand an argument vector to
a CommandRunner and get back the exit code and combined output. Tests swap
in a scripted runner; a future native-protocol adapter would simply stop
using it.

Example:
    runner = CommandRunner(timeout_seconds=10)
    result = await runner.run("redis-cli", ["--version"])
    if result.ok:
        print(result.output)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from polyqueue_lsp.constants import DEFAULT_COMMAND_TIMEOUT_SECONDS
from polyqueue_lsp.exceptions import CommandTimeoutError, ToolUnavailableError
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import CommandResult

logger = get_logger(__name__)


class CommandRunner:
    """Run a CLI tool and capture exit code plus combined stdout/stderr."""

    def __init__(self, timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    async def run(self, tool: str, args: Sequence[str]) -> CommandResult:
        """Run `tool` with `args`.

        Args:
            tool: Executable name or path.
            args: Argument vector (not passed through a shell).

        Returns:
            CommandResult with the exit code and combined output, minus the
            final line ending.

        Raises:
            ToolUnavailableError: The process could not be spawned.
            CommandTimeoutError: The process did not finish in time.
        """
        start_time = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                tool,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise ToolUnavailableError(
                f"Cannot run {tool}: {e.strerror or e}",
                adapter_name=tool,
                details={"args": list(args)},
            ) from e

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except TimeoutError as e:
            process.kill()
            await process.wait()
            raise CommandTimeoutError(
                f"{tool} timed out after {self._timeout:g}s",
                adapter_name=tool,
                details={"args": list(args)},
            ) from e

        # Only the final line ending goes: trailing blanks can be message data
        output = stdout.decode("utf-8", errors="replace").removesuffix("\n").removesuffix("\r")
        exit_code = process.returncode if process.returncode is not None else -1

        logger.debug(
            "Command finished",
            extra={
                "tool": tool,
                "argv": " ".join(args),
                "exit_code": exit_code,
                "duration_ms": int((time.monotonic() - start_time) * 1000),
            },
        )

        return CommandResult(exit_code=exit_code, output=output)
