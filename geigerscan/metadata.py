"""Workspace package metadata, dependencies and version requirements."""

from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

import semver

from geigerscan.report import DependencyKind

_log = logging.getLogger(__name__)


class _Op(enum.Enum):
    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = "*"


_COMPARATOR_RE = re.compile(
    r"""
    ^(?P<op>>=|<=|>|<|=|~|\^)?
    \s*
    (?P<major>\d+|[*xX])
    (?:\.(?P<minor>\d+|[*xX]))?
    (?:\.(?P<patch>\d+|[*xX]))?
    (?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    (?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$
    """,
    re.VERBOSE,
)

_WILDCARDS = frozenset("*xX")


def _compare_pre(left: str, right: str) -> int:
    """Order pre-release strings; an empty one ranks above any other."""
    return semver.Version(0, 0, 0, prerelease=left or None).compare(
        semver.Version(0, 0, 0, prerelease=right or None)
    )


@dataclass(frozen=True)
class _Comparator:
    op: _Op
    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str = ""

    def matches(self, version: semver.Version) -> bool:
        pre = version.prerelease or ""
        if self.op in (_Op.EXACT, _Op.WILDCARD):
            return self._exact(version, pre)
        if self.op is _Op.GREATER:
            return self._greater(version, pre)
        if self.op is _Op.GREATER_EQ:
            return self._exact(version, pre) or self._greater(version, pre)
        if self.op is _Op.LESS:
            return self._less(version, pre)
        if self.op is _Op.LESS_EQ:
            return self._exact(version, pre) or self._less(version, pre)
        if self.op is _Op.TILDE:
            return self._tilde(version, pre)
        return self._caret(version, pre)

    def pre_is_compatible(self, version: semver.Version) -> bool:
        return (
            version.major == self.major
            and version.minor == self.minor
            and version.patch == self.patch
            and bool(self.pre)
        )

    def _exact(self, v: semver.Version, pre: str) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return False
        return _compare_pre(pre, self.pre) == 0

    def _greater(self, v: semver.Version, pre: str) -> bool:
        if v.major != self.major:
            return v.major > self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor > self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch > self.patch
        return _compare_pre(pre, self.pre) > 0

    def _less(self, v: semver.Version, pre: str) -> bool:
        if v.major != self.major:
            return v.major < self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor < self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch < self.patch
        return _compare_pre(pre, self.pre) < 0

    def _tilde(self, v: semver.Version, pre: str) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return v.patch > self.patch
        return _compare_pre(pre, self.pre) >= 0

    def _caret(self, v: semver.Version, pre: str) -> bool:
        if v.major != self.major:
            return False
        if self.minor is None:
            return True
        minor = self.minor
        if self.patch is None:
            return v.minor >= minor if self.major > 0 else v.minor == minor
        patch = self.patch
        if self.major > 0:
            if v.minor != minor:
                return v.minor > minor
            if v.patch != patch:
                return v.patch > patch
        elif minor > 0:
            if v.minor != minor:
                return False
            if v.patch != patch:
                return v.patch > patch
        elif v.minor != minor or v.patch != patch:
            return False
        return _compare_pre(pre, self.pre) >= 0


def _number(text: str, what: str) -> int:
    if len(text) > 1 and text.startswith("0"):
        raise ValueError(f"invalid leading zero in {what} version number")
    return int(text)


def _parse_comparator(text: str) -> _Comparator | None:
    """Parse one comparator; None stands for a bare wildcard matching all."""
    match = _COMPARATOR_RE.match(text)
    if match is None:
        raise ValueError(f"unexpected version requirement: {text!r}")
    op_text, major, minor, patch, pre = match.group("op", "major", "minor", "patch", "pre")

    if major in _WILDCARDS:
        if op_text is not None or minor not in (None, *_WILDCARDS) or patch not in (
            None,
            *_WILDCARDS,
        ):
            raise ValueError(f"unexpected wildcard in version requirement: {text!r}")
        if pre is not None:
            raise ValueError(f"unexpected pre-release after wildcard: {text!r}")
        return None

    wildcard = False
    parts: list[int | None] = []
    for part, what in ((minor, "minor"), (patch, "patch")):
        if part is None or part in _WILDCARDS:
            wildcard = wildcard or part is not None
            parts.append(None)
        else:
            if wildcard or parts and parts[-1] is None:
                raise ValueError(f"unexpected number after wildcard: {text!r}")
            parts.append(_number(part, what))
    minor_num, patch_num = parts

    if pre is not None and patch_num is None:
        raise ValueError(f"pre-release requires a full version: {text!r}")

    op = _Op(op_text) if op_text is not None else _Op.CARET
    if wildcard and op in (_Op.CARET, _Op.EXACT) and op_text in (None, "="):
        op = _Op.WILDCARD
    return _Comparator(
        op=op,
        major=_number(major, "major"),
        minor=minor_num,
        patch=patch_num,
        pre=pre or "",
    )


@dataclass(frozen=True)
class VersionReq:
    """A version requirement such as ``^1.2`` or ``>=1.0, <2.0``."""

    comparators: tuple[_Comparator, ...] = ()
    text: str = field(default="*", compare=False)

    @classmethod
    def parse(cls, text: str) -> VersionReq:
        stripped = text.strip()
        if not stripped:
            raise ValueError("empty string, expected a version requirement")
        comparators = []
        for piece in stripped.split(","):
            piece = piece.strip()
            if not piece:
                raise ValueError(f"empty comparator in version requirement: {text!r}")
            comparator = _parse_comparator(piece)
            if comparator is not None:
                comparators.append(comparator)
        return cls(tuple(comparators), stripped)

    def matches(self, version: semver.Version | str) -> bool:
        """Whether the version satisfies every comparator of the requirement."""
        if isinstance(version, str):
            version = semver.Version.parse(version)
        if not all(comparator.matches(version) for comparator in self.comparators):
            return False
        if not version.prerelease:
            return True
        return any(comparator.pre_is_compatible(version) for comparator in self.comparators)

    def __str__(self) -> str:
        return self.text


_KINDS = {
    None: DependencyKind.NORMAL,
    "normal": DependencyKind.NORMAL,
    "dev": DependencyKind.DEVELOPMENT,
    "build": DependencyKind.BUILD,
}


@dataclass(frozen=True)
class Dependency:
    """A dependency as declared in a package manifest."""

    name: str
    req: VersionReq
    kind: DependencyKind = DependencyKind.NORMAL
    target: str | None = None
    optional: bool = False
    source: str | None = None

    def to_package_id(self, metadata: Metadata) -> str | None:
        """Id of the last package in the metadata this dependency resolves to."""
        found = [
            package.id
            for package in metadata.packages
            if package.name == self.name and self.req.matches(package.version)
        ]
        return found[-1] if found else None


@dataclass
class Package:
    """A package of the workspace or of its dependency tree."""

    id: str
    name: str
    version: semver.Version
    manifest_path: Path
    dependencies: list[Dependency] = field(default_factory=list)
    license: str | None = None
    repository: str | None = None
    source: str | None = None

    def root(self) -> Path | None:
        """Directory holding the package manifest."""
        parent = self.manifest_path.parent
        if not self.manifest_path.parts or parent == self.manifest_path:
            _log.warning("Failed to get root for: %s %s", self.name, self.version)
            return None
        return parent


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


def _optional_string(value: Any, key: str) -> str | None:
    return None if value is None else _string(value, key)


def _list(value: Any, key: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"invalid type for `{key}`: expected a sequence")
    return value


def _dependency_from_dict(data: Any) -> Dependency:
    data = _mapping(data, "a dependency")
    kind_text = data.get("kind")
    try:
        kind = _KINDS[kind_text]
    except (KeyError, TypeError):
        raise ValueError(f"Unrecognised Dependency Kind: {kind_text!r}") from None
    return Dependency(
        name=_string(_field(data, "name"), "name"),
        req=VersionReq.parse(_string(_field(data, "req"), "req")),
        kind=kind,
        target=_optional_string(data.get("target"), "target"),
        optional=bool(data.get("optional", False)),
        source=_optional_string(data.get("source"), "source"),
    )


def _package_from_dict(data: Any) -> Package:
    data = _mapping(data, "a package")
    return Package(
        id=_string(_field(data, "id"), "id"),
        name=_string(_field(data, "name"), "name"),
        version=semver.Version.parse(_string(_field(data, "version"), "version")),
        manifest_path=Path(_string(_field(data, "manifest_path"), "manifest_path")),
        dependencies=[
            _dependency_from_dict(item)
            for item in _list(data.get("dependencies", []), "dependencies")
        ],
        license=_optional_string(data.get("license"), "license"),
        repository=_optional_string(data.get("repository"), "repository"),
        source=_optional_string(data.get("source"), "source"),
    )


@dataclass
class Metadata:
    """Package metadata of a workspace, as reported by the build tool."""

    packages: list[Package] = field(default_factory=list)
    workspace_members: list[str] = field(default_factory=list)
    workspace_root: Path | None = None
    resolve_root: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Metadata:
        data = _mapping(data, "workspace metadata")
        resolve = data.get("resolve")
        resolve_root = None
        if resolve is not None:
            resolve_root = _optional_string(_mapping(resolve, "a resolve").get("root"), "root")
        workspace_root = _optional_string(data.get("workspace_root"), "workspace_root")
        return cls(
            packages=[_package_from_dict(item) for item in _list(_field(data, "packages"), "packages")],
            workspace_members=[
                _string(item, "workspace_members")
                for item in _list(data.get("workspace_members", []), "workspace_members")
            ],
            workspace_root=Path(workspace_root) if workspace_root is not None else None,
            resolve_root=resolve_root,
        )

    @classmethod
    def from_json(cls, text: str) -> Metadata:
        return cls.from_dict(json.loads(text))

    def __iter__(self) -> Iterator[Package]:
        return iter(self.packages)

    def package(self, package_id: str) -> Package | None:
        """The last package carrying the given id."""
        found = [package for package in self.packages if package.id == package_id]
        return found[-1] if found else None

    def root_package(self) -> Package | None:
        """The package the workspace was resolved from, if there is one."""
        if self.resolve_root is not None:
            return self.package(self.resolve_root)
        if self.workspace_root is not None:
            manifest = self.workspace_root / "Cargo.toml"
            return next((p for p in self.packages if p.manifest_path == manifest), None)
        return None

    def deps_not_replaced(self, package_id: str, is_root_package: bool) -> list[str] | None:
        """Ids of the packages a package depends on, each once, in declaration order.

        Development dependencies count only for the root package. None is
        returned when the package is not in the metadata.
        """
        package = self.package(package_id)
        if package is None:
            _log.warning("Failed to convert Package Id: %s to Package", package_id)
            return None
        seen: set[str] = set()
        result: list[str] = []
        for dependency in package.dependencies:
            dependency_id = dependency.to_package_id(self)
            if dependency_id is None:
                continue
            if dependency.kind is DependencyKind.DEVELOPMENT and not is_root_package:
                continue
            if dependency_id not in seen:
                seen.add(dependency_id)
                result.append(dependency_id)
        return result