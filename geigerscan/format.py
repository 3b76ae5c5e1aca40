"""Format pattern parsing and the display enumerations of the report."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Iterator

from geigerscan.report import DependencyKind


class Charset(enum.Enum):
    """Character set used to draw the output."""

    ASCII = "Ascii"
    GITHUB_MARKDOWN = "GitHubMarkdown"
    UTF8 = "Utf8"

    @classmethod
    def from_str(cls, s: str) -> Charset:
        """Parse a charset name, ignoring case."""
        wanted = s.lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise ValueError("invalid charset")


class ChunkKind(enum.Enum):
    LICENSE = "License"
    PACKAGE = "Package"
    RAW = "Raw"
    REPOSITORY = "Repository"


@dataclass(frozen=True)
class Chunk:
    """Piece of a format pattern; raw chunks carry their text."""

    kind: ChunkKind
    text: str | None = None


class RawChunkKind(enum.Enum):
    ARGUMENT = "Argument"
    ERROR = "Error"
    TEXT = "Text"


@dataclass(frozen=True)
class RawChunk:
    """Token produced by the format string parser."""

    kind: RawChunkKind
    value: str


class CrateDetectionStatus(enum.Enum):
    NONE_DETECTED_FORBIDS_UNSAFE = "NoneDetectedForbidsUnsafe"
    NONE_DETECTED_ALLOWS_UNSAFE = "NoneDetectedAllowsUnsafe"
    UNSAFE_DETECTED = "UnsafeDetected"


class SymbolKind(enum.IntEnum):
    LOCK = 0
    QUESTION_MARK = 1
    RADS = 2


class FormatError(Exception):
    """Raised when a format pattern cannot be built."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"FormatError {{ message: {json.dumps(self.message, ensure_ascii=False)} }}"


_GROUP_NAMES = {
    DependencyKind.BUILD: "[build-dependencies]",
    DependencyKind.DEVELOPMENT: "[dev-dependencies]",
    DependencyKind.NORMAL: None,
}


def get_kind_group_name(dep_kind: DependencyKind) -> str | None:
    """Heading for a group of extra dependencies; None for normal ones."""
    try:
        return _GROUP_NAMES[dep_kind]
    except (KeyError, TypeError):
        raise ValueError("Unrecognised Dependency Kind") from None


class Parser:
    """Splits a format string such as ``"{p} {l}"`` into raw chunks."""

    def __init__(self, s: str) -> None:
        self.s = s
        self._pos = 0

    def _peek(self) -> str | None:
        return self.s[self._pos] if self._pos < len(self.s) else None

    def _consume(self, ch: str) -> bool:
        if self._peek() == ch:
            self._pos += 1
            return True
        return False

    def argument(self) -> RawChunk:
        return RawChunk(RawChunkKind.ARGUMENT, self.name())

    def name(self) -> str:
        """Read an identifier: a letter followed by letters or digits."""
        first = self._peek()
        if first is None or not first.isalpha():
            return ""
        start = self._pos
        self._pos += 1
        while (ch := self._peek()) is not None and ch.isalnum():
            self._pos += 1
        return self.s[start:self._pos]

    def text(self, start: int) -> RawChunk:
        """Read literal text up to the next brace or closing parenthesis."""
        while (ch := self._peek()) is not None:
            # A lone ')' at the start of a chunk is literal, so the parser
            # always advances.
            if ch in "{}" or (ch == ")" and self._pos > start):
                return RawChunk(RawChunkKind.TEXT, self.s[start:self._pos])
            self._pos += 1
        return RawChunk(RawChunkKind.TEXT, self.s[start:])

    def __iter__(self) -> Iterator[RawChunk]:
        return self

    def __next__(self) -> RawChunk:
        ch = self._peek()
        if ch is None:
            raise StopIteration
        if ch == "{":
            self._pos += 1
            if self._consume("{"):
                return RawChunk(RawChunkKind.TEXT, "{")
            chunk = self.argument()
            if self._consume("}"):
                return chunk
            self._pos = len(self.s)
            return RawChunk(RawChunkKind.ERROR, "expected '}'")
        if ch == "}":
            self._pos += 1
            return RawChunk(RawChunkKind.ERROR, "unexpected '}'")
        return self.text(self._pos)


_ARGUMENT_CHUNKS = {
    "p": ChunkKind.PACKAGE,
    "l": ChunkKind.LICENSE,
    "r": ChunkKind.REPOSITORY,
}


@dataclass
class Pattern:
    """Parsed format string used to print each package."""

    chunks: list[Chunk] = field(default_factory=list)

    @classmethod
    def try_build(cls, format_string: str) -> Pattern:
        """Parse a format string, raising FormatError when it is invalid."""
        chunks = []
        for raw in Parser(format_string):
            if raw.kind is RawChunkKind.TEXT:
                chunks.append(Chunk(ChunkKind.RAW, raw.value))
            elif raw.kind is RawChunkKind.ARGUMENT:
                kind = _ARGUMENT_CHUNKS.get(raw.value)
                if kind is None:
                    raise FormatError(f"unsupported pattern `{raw.value}`")
                chunks.append(Chunk(kind))
            else:
                raise FormatError(raw.value)
        return cls(chunks)