import io
import sys
from types import SimpleNamespace

import pytest

from geigerscan.format import Chunk, ChunkKind, CrateDetectionStatus, FormatError, Pattern, SymbolKind
from geigerscan.print_config import (
    EdgeDirection,
    EmojiSymbols,
    IncludeTests,
    OutputFormat,
    Prefix,
    PrintConfig,
    colorize,
)


def _args(**overrides):
    values = dict(
        all=False,
        format="{p}",
        include_tests=False,
        invert=False,
        no_indent=False,
        prefix_depth=False,
        output_format=OutputFormat.UTF8,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.mark.parametrize(
    "invert, expected",
    [(True, EdgeDirection.INCOMING), (False, EdgeDirection.OUTGOING)],
)
def test_from_args_invert(invert, expected):
    assert PrintConfig.from_args(_args(invert=invert)).direction is expected


@pytest.mark.parametrize(
    "format_string, expected",
    [
        ("{p}", Pattern([Chunk(ChunkKind.PACKAGE)])),
        ("{l}", Pattern([Chunk(ChunkKind.LICENSE)])),
        ("{r}", Pattern([Chunk(ChunkKind.REPOSITORY)])),
        ("Text", Pattern([Chunk(ChunkKind.RAW, "Text")])),
        (
            "{p}-{l}-{r}-Text",
            Pattern(
                [
                    Chunk(ChunkKind.PACKAGE),
                    Chunk(ChunkKind.RAW, "-"),
                    Chunk(ChunkKind.LICENSE),
                    Chunk(ChunkKind.RAW, "-"),
                    Chunk(ChunkKind.REPOSITORY),
                    Chunk(ChunkKind.RAW, "-Text"),
                ]
            ),
        ),
    ],
)
def test_from_args_format(format_string, expected):
    assert PrintConfig.from_args(_args(format=format_string)).format == expected


def test_from_args_bad_format():
    with pytest.raises(FormatError) as excinfo:
        PrintConfig.from_args(_args(format="{x}"))
    assert excinfo.value.message == "unsupported pattern `x`"


@pytest.mark.parametrize(
    "include_tests, expected",
    [(True, IncludeTests.YES), (False, IncludeTests.NO)],
)
def test_from_args_include_tests(include_tests, expected):
    assert PrintConfig.from_args(_args(include_tests=include_tests)).include_tests is expected


@pytest.mark.parametrize(
    "prefix_depth, no_indent, expected",
    [
        (True, False, Prefix.DEPTH),
        (True, True, Prefix.DEPTH),
        (False, True, Prefix.NONE),
        (False, False, Prefix.INDENT),
    ],
)
def test_from_args_prefix(prefix_depth, no_indent, expected):
    config = PrintConfig.from_args(_args(prefix_depth=prefix_depth, no_indent=no_indent))
    assert config.prefix is expected


def test_from_args_copies_flags():
    config = PrintConfig.from_args(_args(all=True, output_format=OutputFormat.RATIO))
    assert config.all is True
    assert config.allow_partial_results is True
    assert config.output_format is OutputFormat.RATIO


def test_default_print_config():
    config = PrintConfig()
    assert config.all is False
    assert config.allow_partial_results is False
    assert config.direction is EdgeDirection.OUTGOING
    assert config.format == Pattern([Chunk(ChunkKind.RAW, "p")])
    assert config.include_tests is IncludeTests.YES
    assert config.prefix is Prefix.DEPTH
    assert config.output_format is OutputFormat.UTF8


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Ascii", OutputFormat.ASCII),
        ("Json", OutputFormat.JSON),
        ("GitHubMarkdown", OutputFormat.GITHUB_MARKDOWN),
        ("Utf8", OutputFormat.UTF8),
        ("Ratio", OutputFormat.RATIO),
    ],
)
def test_output_format_from_str(text, expected):
    assert OutputFormat.from_str(text) is expected


@pytest.mark.parametrize("text", ["unknown_variant", "ascii"])
def test_output_format_from_str_unknown(text):
    with pytest.raises(ValueError, match="Matching variant not found"):
        OutputFormat.from_str(text)


@pytest.mark.parametrize(
    "status, output_format, expected",
    [
        (
            CrateDetectionStatus.NONE_DETECTED_FORBIDS_UNSAFE,
            OutputFormat.ASCII,
            "\x1b[32mstring_value\x1b[0m",
        ),
        (CrateDetectionStatus.NONE_DETECTED_ALLOWS_UNSAFE, OutputFormat.UTF8, "string_value"),
        (
            CrateDetectionStatus.UNSAFE_DETECTED,
            OutputFormat.ASCII,
            "\x1b[1;31mstring_value\x1b[0m",
        ),
        (
            CrateDetectionStatus.NONE_DETECTED_FORBIDS_UNSAFE,
            OutputFormat.GITHUB_MARKDOWN,
            "string_value",
        ),
        (
            CrateDetectionStatus.NONE_DETECTED_ALLOWS_UNSAFE,
            OutputFormat.GITHUB_MARKDOWN,
            "string_value",
        ),
        (CrateDetectionStatus.UNSAFE_DETECTED, OutputFormat.GITHUB_MARKDOWN, "string_value"),
    ],
)
def test_colorize(status, output_format, expected):
    colored = colorize(status, output_format, "string_value")
    assert colored.render(True) == expected
    assert colored.render(False) == "string_value"
    assert colored.text == "string_value"


def test_colorize_attributes():
    colored = colorize(CrateDetectionStatus.UNSAFE_DETECTED, OutputFormat.RATIO, "x")
    assert (colored.color, colored.bold) == ("red", True)
    plain = colorize(CrateDetectionStatus.UNSAFE_DETECTED, OutputFormat.GITHUB_MARKDOWN, "x")
    assert (plain.color, plain.bold) == (None, False)


def test_colored_padding_inside_escapes(monkeypatch):
    monkeypatch.setenv("CLICOLOR_FORCE", "1")
    colored = colorize(CrateDetectionStatus.NONE_DETECTED_FORBIDS_UNSAFE, OutputFormat.ASCII, "ab")
    assert format(colored, "<4") == "\x1b[32mab  \x1b[0m"
    assert len(colored) == 2


def test_colored_disabled_by_no_color(monkeypatch):
    monkeypatch.delenv("CLICOLOR_FORCE", raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    colored = colorize(CrateDetectionStatus.UNSAFE_DETECTED, OutputFormat.ASCII, "ab")
    assert str(colored) == "ab"
    assert f"{colored: <4}" == "ab  "


def test_emoji_symbols_markdown():
    symbols = EmojiSymbols(OutputFormat.GITHUB_MARKDOWN)
    assert symbols.will_output_emoji() is True
    assert symbols.emoji(SymbolKind.LOCK) == "\U0001f512"
    assert symbols.emoji(SymbolKind.QUESTION_MARK) == "\u2753"
    assert symbols.emoji(SymbolKind.RADS) == "\u2622\ufe0f"


def test_emoji_symbols_ascii_fallbacks():
    symbols = EmojiSymbols(OutputFormat.ASCII)
    assert symbols.will_output_emoji() is False
    assert symbols.emoji(SymbolKind.LOCK).text == ":)"
    assert symbols.emoji(SymbolKind.QUESTION_MARK).text == "?"
    rads = symbols.emoji(SymbolKind.RADS)
    assert rads.text == "!"
    assert rads.render(True) == "\x1b[1;31m!\x1b[0m"


def test_emoji_symbols_utf8_without_terminal(monkeypatch):
    monkeypatch.setattr(sys, "stdout", io.StringIO())
    symbols = EmojiSymbols(OutputFormat.UTF8)
    assert symbols.will_output_emoji() is False
    assert symbols.emoji(SymbolKind.LOCK).render(True) == "\x1b[32m:)\x1b[0m"