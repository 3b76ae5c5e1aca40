"""Data model of the unsafety report and its JSON form."""

from __future__ import annotations

import enum
import functools
import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Union
from urllib.parse import urlsplit

import semver


def _mapping(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"invalid type: expected {what}")
    return data


def _field(data: dict, key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _string(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string")
    return value


def _boolean(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"invalid type for `{key}`: expected a boolean")
    return value


def _u64(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"invalid type for `{key}`: expected an integer")
    if not 0 <= value < 2**64:
        raise ValueError(f"invalid value for `{key}`: {value} is out of range")
    return value


def _sequence(value: Any, key: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"invalid type for `{key}`: expected a sequence")
    return value


def _url(value: Any, key: str) -> str:
    text = _string(value, key)
    if not urlsplit(text).scheme:
        raise ValueError(f"invalid URL for `{key}`: {text!r}")
    return text


class DependencyKind(enum.Enum):
    """Section of the manifest a dependency is declared in."""

    NORMAL = "Normal"
    DEVELOPMENT = "Development"
    BUILD = "Build"


@functools.total_ordering
class _SourceBase:
    """Ordering shared by all package sources: by variant, then fields."""

    def _sort_key(self) -> tuple:
        raise NotImplementedError

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, _SourceBase):
            return NotImplemented
        return self._sort_key() < other._sort_key()


@dataclass(frozen=True, eq=True)
class GitSource(_SourceBase):
    """Package fetched from a git repository at a revision."""

    url: str
    rev: str

    def __post_init__(self) -> None:
        _url(self.url, "url")
        _string(self.rev, "rev")

    def _sort_key(self) -> tuple:
        return (0, self.url, self.rev)

    def to_dict(self) -> dict:
        return {"Git": {"url": self.url, "rev": self.rev}}


@dataclass(frozen=True, eq=True)
class RegistrySource(_SourceBase):
    """Package fetched from a named crate registry."""

    name: str
    url: str

    def __post_init__(self) -> None:
        _string(self.name, "name")
        _url(self.url, "url")

    def _sort_key(self) -> tuple:
        return (1, self.name, self.url)

    def to_dict(self) -> dict:
        return {"Registry": {"name": self.name, "url": self.url}}


@dataclass(frozen=True, eq=True)
class PathSource(_SourceBase):
    """Package found at a local path, given as a file URL."""

    url: str

    def __post_init__(self) -> None:
        _url(self.url, "url")

    def _sort_key(self) -> tuple:
        return (2, self.url)

    def to_dict(self) -> dict:
        return {"Path": self.url}


Source = Union[GitSource, RegistrySource, PathSource]


def source_from_dict(data: Any) -> Source:
    """Build a source from its externally tagged dictionary form."""
    data = _mapping(data, "a source")
    if len(data) != 1:
        raise ValueError("invalid source: expected exactly one variant")
    ((variant, body),) = data.items()
    if variant == "Git":
        body = _mapping(body, "a git source")
        return GitSource(url=_url(_field(body, "url"), "url"), rev=_string(_field(body, "rev"), "rev"))
    if variant == "Registry":
        body = _mapping(body, "a registry source")
        return RegistrySource(
            name=_string(_field(body, "name"), "name"),
            url=_url(_field(body, "url"), "url"),
        )
    if variant == "Path":
        return PathSource(url=_url(body, "Path"))
    raise ValueError(f"unknown variant `{variant}`, expected one of `Git`, `Registry`, `Path`")


@functools.total_ordering
@dataclass(frozen=True)
class PackageId:
    """Identifies a package in the dependency tree."""

    name: str
    version: semver.Version
    source: Source

    def __post_init__(self) -> None:
        if isinstance(self.version, str):
            object.__setattr__(self, "version", semver.Version.parse(self.version))

    def _sort_key(self) -> tuple:
        return (self.name, self.version, self.source._sort_key())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PackageId):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": str(self.version),
            "source": self.source.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> PackageId:
        data = _mapping(data, "a package id")
        return cls(
            name=_string(_field(data, "name"), "name"),
            version=semver.Version.parse(_string(_field(data, "version"), "version")),
            source=source_from_dict(_field(data, "source")),
        )


def _ids_to_list(ids: set[PackageId]) -> list[dict]:
    return [package_id.to_dict() for package_id in sorted(ids)]


def _ids_from_list(value: Any, key: str) -> set[PackageId]:
    return {PackageId.from_dict(item) for item in _sequence(value, key)}


@dataclass
class PackageInfo:
    """A package together with its dependencies, by kind."""

    id: PackageId
    dependencies: set[PackageId] = field(default_factory=set)
    dev_dependencies: set[PackageId] = field(default_factory=set)
    build_dependencies: set[PackageId] = field(default_factory=set)

    def add_dependency(self, dep: PackageId, kind: DependencyKind) -> None:
        if kind is DependencyKind.NORMAL:
            self.dependencies.add(dep)
        elif kind is DependencyKind.DEVELOPMENT:
            self.dev_dependencies.add(dep)
        elif kind is DependencyKind.BUILD:
            self.build_dependencies.add(dep)
        else:
            raise ValueError(f"unknown dependency kind: {kind!r}")

    def to_dict(self) -> dict:
        return {
            "id": self.id.to_dict(),
            "dependencies": _ids_to_list(self.dependencies),
            "dev_dependencies": _ids_to_list(self.dev_dependencies),
            "build_dependencies": _ids_to_list(self.build_dependencies),
        }

    @classmethod
    def from_dict(cls, data: Any) -> PackageInfo:
        data = _mapping(data, "package info")
        return cls(
            id=PackageId.from_dict(_field(data, "id")),
            dependencies=_ids_from_list(_field(data, "dependencies"), "dependencies"),
            dev_dependencies=_ids_from_list(_field(data, "dev_dependencies"), "dev_dependencies"),
            build_dependencies=_ids_from_list(
                _field(data, "build_dependencies"), "build_dependencies"
            ),
        )


@dataclass
class Count:
    """Numbers of safe and unsafe items."""

    safe: int = 0
    unsafe: int = 0

    def count(self, is_unsafe: bool) -> None:
        """Increment the unsafe or the safe counter by one."""
        if is_unsafe:
            self.unsafe += 1
        else:
            self.safe += 1

    def __add__(self, other: Count) -> Count:
        if not isinstance(other, Count):
            return NotImplemented
        return Count(safe=self.safe + other.safe, unsafe=self.unsafe + other.unsafe)

    def to_dict(self) -> dict:
        return {"safe": self.safe, "unsafe_": self.unsafe}

    @classmethod
    def from_dict(cls, data: Any) -> Count:
        data = _mapping(data, "a count")
        return cls(
            safe=_u64(_field(data, "safe"), "safe"),
            unsafe=_u64(_field(data, "unsafe_"), "unsafe_"),
        )


_COUNTER_NAMES = ("functions", "exprs", "item_impls", "item_traits", "methods")


@dataclass
class CounterBlock:
    """Unsafe usage metrics per kind of item."""

    functions: Count = field(default_factory=Count)
    exprs: Count = field(default_factory=Count)
    item_impls: Count = field(default_factory=Count)
    item_traits: Count = field(default_factory=Count)
    methods: Count = field(default_factory=Count)

    def has_unsafe(self) -> bool:
        return any(getattr(self, name).unsafe > 0 for name in _COUNTER_NAMES)

    def __add__(self, other: CounterBlock) -> CounterBlock:
        if not isinstance(other, CounterBlock):
            return NotImplemented
        return CounterBlock(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def to_dict(self) -> dict:
        return {name: getattr(self, name).to_dict() for name in _COUNTER_NAMES}

    @classmethod
    def from_dict(cls, data: Any) -> CounterBlock:
        data = _mapping(data, "a counter block")
        return cls(**{name: Count.from_dict(_field(data, name)) for name in _COUNTER_NAMES})


@dataclass
class UnsafeInfo:
    """Unsafety usage in a package, split by whether the code is used."""

    used: CounterBlock = field(default_factory=CounterBlock)
    unused: CounterBlock = field(default_factory=CounterBlock)
    forbids_unsafe: bool = False

    def to_dict(self) -> dict:
        return {
            "used": self.used.to_dict(),
            "unused": self.unused.to_dict(),
            "forbids_unsafe": self.forbids_unsafe,
        }

    @classmethod
    def from_dict(cls, data: Any) -> UnsafeInfo:
        data = _mapping(data, "unsafe info")
        return cls(
            used=CounterBlock.from_dict(_field(data, "used")),
            unused=CounterBlock.from_dict(_field(data, "unused")),
            forbids_unsafe=_boolean(_field(data, "forbids_unsafe"), "forbids_unsafe"),
        )


@dataclass
class QuickReportEntry:
    """Entry of a scan for packages that forbid unsafe code."""

    package: PackageInfo
    forbids_unsafe: bool

    def to_dict(self) -> dict:
        return {"package": self.package.to_dict(), "forbids_unsafe": self.forbids_unsafe}

    @classmethod
    def from_dict(cls, data: Any) -> QuickReportEntry:
        data = _mapping(data, "a quick report entry")
        return cls(
            package=PackageInfo.from_dict(_field(data, "package")),
            forbids_unsafe=_boolean(_field(data, "forbids_unsafe"), "forbids_unsafe"),
        )


@dataclass
class ReportEntry:
    """Entry of a scan for the use of unsafe code."""

    package: PackageInfo
    unsafety: UnsafeInfo

    def to_dict(self) -> dict:
        return {"package": self.package.to_dict(), "unsafety": self.unsafety.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> ReportEntry:
        data = _mapping(data, "a report entry")
        return cls(
            package=PackageInfo.from_dict(_field(data, "package")),
            unsafety=UnsafeInfo.from_dict(_field(data, "unsafety")),
        )


def _entries_to_list(entries: dict) -> list[dict]:
    return [entry.to_dict() for entry in sorted(entries.values(), key=lambda e: e.package.id)]


def _entries_from_list(value: Any, entry_cls: type) -> dict:
    entries = (entry_cls.from_dict(item) for item in _sequence(value, "packages"))
    return {entry.package.id: entry for entry in entries}


@dataclass
class QuickSafetyReport:
    """Report of a scan for packages that forbid unsafe code."""

    packages: dict[PackageId, QuickReportEntry] = field(default_factory=dict)
    packages_without_metrics: set[PackageId] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "packages": _entries_to_list(self.packages),
            "packages_without_metrics": _ids_to_list(self.packages_without_metrics),
        }

    @classmethod
    def from_dict(cls, data: Any) -> QuickSafetyReport:
        data = _mapping(data, "a quick safety report")
        return cls(
            packages=_entries_from_list(_field(data, "packages"), QuickReportEntry),
            packages_without_metrics=_ids_from_list(
                _field(data, "packages_without_metrics"), "packages_without_metrics"
            ),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> QuickSafetyReport:
        return cls.from_dict(json.loads(text))


@dataclass
class SafetyReport:
    """Report of a scan for the use of unsafe code."""

    packages: dict[PackageId, ReportEntry] = field(default_factory=dict)
    packages_without_metrics: set[PackageId] = field(default_factory=set)
    used_but_not_scanned_files: set[Path] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "packages": _entries_to_list(self.packages),
            "packages_without_metrics": _ids_to_list(self.packages_without_metrics),
            "used_but_not_scanned_files": [
                str(path) for path in sorted(self.used_but_not_scanned_files)
            ],
        }

    @classmethod
    def from_dict(cls, data: Any) -> SafetyReport:
        data = _mapping(data, "a safety report")
        files = _sequence(_field(data, "used_but_not_scanned_files"), "used_but_not_scanned_files")
        return cls(
            packages=_entries_from_list(_field(data, "packages"), ReportEntry),
            packages_without_metrics=_ids_from_list(
                _field(data, "packages_without_metrics"), "packages_without_metrics"
            ),
            used_but_not_scanned_files={
                Path(_string(item, "used_but_not_scanned_files")) for item in files
            },
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> SafetyReport:
        return cls.from_dict(json.loads(text))