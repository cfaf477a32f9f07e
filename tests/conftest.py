"""Shared fixtures for PolyQueue LSP tests."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from polyqueue_lsp.adapters import CommandRunner
from polyqueue_lsp.models import CommandResult


def _contains(args: list[str], match: tuple[str, ...]) -> bool:
    """Whether `match` appears as a contiguous run inside `args`."""
    if not match:
        return True
    width = len(match)
    return any(tuple(args[i : i + width]) == match for i in range(len(args) - width + 1))


class FakeRunner(CommandRunner):
    """CommandRunner that replays scripted replies instead of spawning tools.

    Replies are matched on the tool name (optional) and a contiguous run of
    arguments. Later registrations win. Unmatched calls behave like a tool
    that exits 1 with no output.
    """

    def __init__(self) -> None:
        super().__init__(timeout_seconds=1.0)
        self.calls: list[tuple[str, list[str]]] = []
        self.delay = 0.0
        self._replies: list[tuple[str | None, tuple[str, ...], CommandResult | Exception]] = []

    def reply(
        self,
        *match: str,
        output: str = "",
        exit_code: int = 0,
        tool: str | None = None,
    ) -> None:
        self._replies.append((tool, match, CommandResult(exit_code=exit_code, output=output)))

    def fail(self, *match: str, error: Exception, tool: str | None = None) -> None:
        self._replies.append((tool, match, error))

    def args_for(self, *match: str) -> list[str]:
        """Arguments of the first recorded call containing `match`."""
        for _, args in self.calls:
            if _contains(args, match):
                return args
        raise AssertionError(f"no call matching {match!r}; calls were {self.calls!r}")

    def count(self, *match: str) -> int:
        return sum(1 for _, args in self.calls if _contains(args, match))

    async def run(self, tool: str, args: Sequence[str]) -> CommandResult:
        args = list(args)
        self.calls.append((tool, args))
        if self.delay:
            await asyncio.sleep(self.delay)

        for reply_tool, match, reply in reversed(self._replies):
            if reply_tool is not None and reply_tool != tool:
                continue
            if _contains(args, match):
                if isinstance(reply, Exception):
                    raise reply
                return reply

        return CommandResult(exit_code=1, output="")


@pytest.fixture
def runner() -> FakeRunner:
    """Create a scripted command runner."""
    return FakeRunner()
