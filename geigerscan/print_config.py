"""Printing configuration, output formats, terminal colouring and symbols."""

from __future__ import annotations

import enum
import os
import sys
from dataclasses import dataclass, field
from typing import Any

from geigerscan.format import CrateDetectionStatus, Pattern, SymbolKind


class Prefix(enum.Enum):
    DEPTH = "Depth"
    INDENT = "Indent"
    NONE = "None"


class OutputFormat(enum.Enum):
    """Output format of the report."""

    ASCII = "Ascii"
    JSON = "Json"
    GITHUB_MARKDOWN = "GitHubMarkdown"
    RATIO = "Ratio"
    UTF8 = "Utf8"

    @classmethod
    def from_str(cls, s: str) -> OutputFormat:
        """Parse the exact name of an output format."""
        try:
            return cls(s)
        except ValueError:
            raise ValueError("Matching variant not found") from None


class EdgeDirection(enum.Enum):
    OUTGOING = "Outgoing"
    INCOMING = "Incoming"


class IncludeTests(enum.Enum):
    YES = "Yes"
    NO = "No"


def _isatty(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (ValueError, OSError):
        return False


def _should_colorize() -> bool:
    force = os.environ.get("CLICOLOR_FORCE")
    if force is not None and force != "0":
        return True
    if "NO_COLOR" in os.environ:
        return False
    return os.environ.get("CLICOLOR") != "0" and _isatty(sys.stdout)


_COLOR_CODES = {"red": "31", "green": "32"}


@dataclass(frozen=True)
class _ColoredString:
    """Text with a terminal colour and weight, rendered on demand."""

    text: str
    color: str | None = None
    bold: bool = False

    def _is_plain(self) -> bool:
        return self.color is None and not self.bold

    def _render(self, spec: str, enabled: bool | None) -> str:
        body = format(self.text, spec)
        if enabled is None:
            enabled = _should_colorize()
        if not enabled or self._is_plain():
            return body
        codes = []
        if self.bold:
            codes.append("1")
        if self.color is not None:
            codes.append(_COLOR_CODES[self.color])
        return f"\x1b[{';'.join(codes)}m{body}\x1b[0m"

    def render(self, enabled: bool | None = None) -> str:
        """Text with escape codes; by default only when the terminal wants them."""
        return self._render("", enabled)

    def __str__(self) -> str:
        return self._render("", None)

    def __format__(self, spec: str) -> str:
        return self._render(spec, None)

    def __len__(self) -> int:
        return len(self.text)


@dataclass
class PrintConfig:
    """Options controlling how the dependency tree is printed."""

    all: bool = False
    allow_partial_results: bool = False
    direction: EdgeDirection = EdgeDirection.OUTGOING
    format: Pattern = field(default_factory=lambda: Pattern.try_build("p"))
    include_tests: IncludeTests = IncludeTests.YES
    prefix: Prefix = Prefix.DEPTH
    output_format: OutputFormat = OutputFormat.UTF8

    @classmethod
    def from_args(cls, args: Any) -> PrintConfig:
        """Build from parsed command line arguments; raises FormatError on a bad format."""
        if args.prefix_depth:
            prefix = Prefix.DEPTH
        elif args.no_indent:
            prefix = Prefix.NONE
        else:
            prefix = Prefix.INDENT
        return cls(
            all=args.all,
            allow_partial_results=True,
            direction=EdgeDirection.INCOMING if args.invert else EdgeDirection.OUTGOING,
            format=Pattern.try_build(args.format),
            include_tests=IncludeTests.YES if args.include_tests else IncludeTests.NO,
            prefix=prefix,
            output_format=args.output_format,
        )


def colorize(
    crate_detection_status: CrateDetectionStatus,
    output_format: OutputFormat,
    string: str,
) -> _ColoredString:
    """Colour text by detection status; markdown output stays plain."""
    if output_format is OutputFormat.GITHUB_MARKDOWN:
        return _ColoredString(string)
    if crate_detection_status is CrateDetectionStatus.NONE_DETECTED_FORBIDS_UNSAFE:
        return _ColoredString(string, color="green")
    if crate_detection_status is CrateDetectionStatus.NONE_DETECTED_ALLOWS_UNSAFE:
        return _ColoredString(string)
    return _ColoredString(string, color="red", bold=True)


def _terminal_wants_emoji() -> bool:
    if not _isatty(sys.stdout):
        return False
    if sys.platform == "darwin":
        return True
    return sys.platform == "win32" and "WT_SESSION" in os.environ


class EmojiSymbols:
    """Status symbols, as emoji where the output can show them."""

    _EMOJIS = ("\U0001f512", "\u2753", "\u2622\ufe0f")

    def __init__(self, output_format: OutputFormat) -> None:
        self.output_format = output_format
        self._fallbacks = (
            colorize(CrateDetectionStatus.NONE_DETECTED_FORBIDS_UNSAFE, output_format, ":)"),
            colorize(CrateDetectionStatus.NONE_DETECTED_ALLOWS_UNSAFE, output_format, "?"),
            colorize(CrateDetectionStatus.UNSAFE_DETECTED, output_format, "!"),
        )

    def emoji(self, kind: SymbolKind) -> str | _ColoredString:
        index = int(SymbolKind(kind))
        if self.will_output_emoji():
            return self._EMOJIS[index]
        return self._fallbacks[index]

    def will_output_emoji(self) -> bool:
        if self.output_format is OutputFormat.GITHUB_MARKDOWN:
            return True
        return self.output_format is OutputFormat.UTF8 and _terminal_wants_emoji()