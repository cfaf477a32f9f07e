"""Configuration diagnostics for queue system config files.

Each queue system validates only the documents it recognizes as its own
configuration format; everything else yields no findings. Rules are a
short predicate list per system. Every pass returns a complete
replacement set, capped at a fixed number of findings.

Example:
    engine = DiagnosticsEngine()
    findings = engine.validate("file:///etc/redis/redis.conf", text, "redis_streams")
"""

from __future__ import annotations

import re
from collections.abc import Callable

from polyqueue_lsp.constants import MAX_DIAGNOSTICS
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import Diagnostic, QueueSystem, Range

logger = get_logger(__name__)

SEVERITY_ERROR = 1
SEVERITY_WARNING = 2

CONFIG_FILE_SUFFIX = ".conf"
REDIS_CONFIG_MARKER = "redis.conf"

# Addresses that make Redis listen on every interface
REDIS_ALL_INTERFACES = frozenset({"0.0.0.0", "*"})

NATS_PORT_KEY = re.compile(r"^port\s*(?:[:=]|\s)", re.IGNORECASE)

# (index, raw line, stripped line) for every content line of a document
ContentLines = list[tuple[int, str, str]]


def _lines(text: str) -> list[str]:
    return [line.rstrip("\r") for line in text.split("\n")]


def _content_lines(text: str, comment_prefixes: tuple[str, ...] = ("#",)) -> ContentLines:
    """Non-blank, non-comment lines with their indexes."""
    content = []
    for index, raw in enumerate(_lines(text)):
        stripped = raw.strip()
        if stripped and not stripped.startswith(comment_prefixes):
            content.append((index, raw, stripped))
    return content


def _finding(message: str, severity: int, line: int = 0, raw: str = "") -> Diagnostic:
    return Diagnostic(
        message=message,
        severity=severity,  # type: ignore[arg-type]
        range=Range.whole_line(line, raw),
    )


# =============================================================================
# REDIS
# =============================================================================


def _redis_findings(text: str) -> list[Diagnostic]:
    lines = _content_lines(text)
    directives = [(index, raw, stripped.split()) for index, raw, stripped in lines]

    has_password = any(
        len(tokens) > 1 and tokens[0].lower() == "requirepass" for _, _, tokens in directives
    )
    if has_password:
        return []

    findings = []
    for index, raw, tokens in directives:
        directive = tokens[0].lower()
        values = tokens[1:]

        if directive == "bind" and REDIS_ALL_INTERFACES.intersection(values):
            findings.append(
                _finding(
                    "bind 0.0.0.0 without requirepass is insecure",
                    SEVERITY_WARNING,
                    index,
                    raw,
                )
            )
        elif directive == "protected-mode" and values[:1] == ["no"]:
            findings.append(
                _finding(
                    "protected-mode no without requirepass is insecure",
                    SEVERITY_WARNING,
                    index,
                    raw,
                )
            )

    return findings


# =============================================================================
# RABBITMQ
# =============================================================================


def _rabbitmq_findings(text: str) -> list[Diagnostic]:
    return [
        _finding(f"Invalid syntax: {stripped}", SEVERITY_ERROR, index, raw)
        for index, raw, stripped in _content_lines(text)
        if "=" not in stripped and "{" not in stripped
    ]


# =============================================================================
# NATS
# =============================================================================


def _nats_findings(text: str) -> list[Diagnostic]:
    lines = _content_lines(text, comment_prefixes=("#", "//"))
    if not lines or any(NATS_PORT_KEY.match(stripped) for _, _, stripped in lines):
        return []

    first_line = _lines(text)[0]
    return [_finding("Missing 'port' configuration", SEVERITY_ERROR, 0, first_line)]


# =============================================================================
# ENGINE
# =============================================================================


class DiagnosticsEngine:
    """Validates queue configuration documents.

    Attributes:
        max_diagnostics: Findings kept per pass; the rest are dropped.
    """

    def __init__(self, max_diagnostics: int = MAX_DIAGNOSTICS) -> None:
        self.max_diagnostics = max_diagnostics

    def validate(self, uri: str, text: str, system: QueueSystem) -> list[Diagnostic]:
        """Run one diagnostics pass over a document.

        Args:
            uri: Document URI, used to recognize configuration files.
            text: Full document text.
            system: The session's detected queue system.

        Returns:
            At most max_diagnostics findings, in document order.
        """
        rule = self._rule_for(uri, system)
        if rule is None or not _content_lines(text):
            return []

        findings = rule(text)
        if len(findings) > self.max_diagnostics:
            logger.debug(
                "Diagnostics capped",
                extra={"uri": uri, "found": len(findings), "kept": self.max_diagnostics},
            )
        return findings[: self.max_diagnostics]

    @staticmethod
    def _rule_for(uri: str, system: QueueSystem) -> Callable[[str], list[Diagnostic]] | None:
        if system == "redis_streams" and REDIS_CONFIG_MARKER in uri:
            return _redis_findings
        if system == "rabbitmq" and uri.endswith(CONFIG_FILE_SUFFIX):
            return _rabbitmq_findings
        if system == "nats" and uri.endswith(CONFIG_FILE_SUFFIX):
            return _nats_findings
        return None
