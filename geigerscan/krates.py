"""Lookup of packages by id or by package specification, and package display."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator
from urllib.parse import urlsplit

import semver

from geigerscan.format import ChunkKind, Pattern
from geigerscan.metadata import Dependency, Metadata, Package

_log = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_PARTIAL_VERSION_RE = re.compile(
    r"""
    ^(?P<major>\d+)
    (?:\.(?P<minor>\d+)
        (?:\.(?P<patch>\d+)
            (?:-(?P<pre>[0-9A-Za-z.-]+))?
            (?:\+(?P<build>[0-9A-Za-z.-]+))?
        )?
    )?$
    """,
    re.VERBOSE,
)


def _split_name_version(text: str) -> tuple[str, str | None]:
    for separator in "@:":
        if separator in text:
            name, _, version = text.partition(separator)
            return name, version
    return text, None


def _normalize_url(url: str) -> str:
    """Strip the source kind prefix, the query and the fragment of a URL."""
    _, plus, rest = url.partition("+")
    if plus and "://" in rest and "://" not in url.split("+", 1)[0]:
        url = rest
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def _package_url(package: Package) -> str | None:
    if package.source is not None:
        return _normalize_url(package.source)
    root = package.root()
    if root is None:
        return None
    try:
        return root.as_uri()
    except ValueError:
        return None


@dataclass(frozen=True)
class PackageSpec:
    """A package specification such as ``name``, ``name:1.2`` or ``url#name@1.2.3``."""

    name: str
    version: str | None = None
    url: str | None = None

    @classmethod
    def parse(cls, text: str) -> PackageSpec:
        url: str | None = None
        if "://" in text:
            raw_url, _, fragment = text.partition("#")
            url_parts = urlsplit(raw_url)
            if not url_parts.scheme:
                raise ValueError(f"invalid URL in package specification {text!r}")
            url = _normalize_url(raw_url)
            name = url_parts.path.rstrip("/").rsplit("/", 1)[-1]
            version: str | None = None
            if fragment:
                fragment_name, fragment_version = _split_name_version(fragment)
                if fragment_version is not None:
                    name, version = fragment_name, fragment_version
                elif fragment[0].isdigit():
                    version = fragment
                else:
                    name = fragment
        else:
            name, version = _split_name_version(text)

        if not _NAME_RE.match(name):
            raise ValueError(f"invalid package name {name!r} in package specification {text!r}")
        if version is not None and _PARTIAL_VERSION_RE.match(version) is None:
            raise ValueError(f"invalid version {version!r} in package specification {text!r}")
        return cls(name=name, version=version, url=url)

    def matches(self, package: Package) -> bool:
        """Whether the package has this name and, where given, version and source."""
        if package.name != self.name:
            return False
        if self.version is not None:
            match = _PARTIAL_VERSION_RE.match(self.version)
            assert match is not None
            major, minor, patch, pre = match.group("major", "minor", "patch", "pre")
            version: semver.Version = package.version
            if int(major) != version.major:
                return False
            if minor is not None and int(minor) != version.minor:
                return False
            if patch is not None and int(patch) != version.patch:
                return False
            if pre is not None and pre != (version.prerelease or ""):
                return False
        if self.url is not None:
            return self.url == _package_url(package)
        return True


class Krates:
    """Packages of a workspace indexed by id."""

    def __init__(self, packages: Iterable[Package]) -> None:
        self._packages = list(packages)
        self._by_id = {package.id: package for package in self._packages}

    @classmethod
    def from_metadata(cls, metadata: Metadata) -> Krates:
        return cls(metadata.packages)

    def __iter__(self) -> Iterator[Package]:
        return iter(self._packages)

    def __len__(self) -> int:
        return len(self._packages)

    def node_for_kid(self, package_id: str) -> Package | None:
        return self._by_id.get(package_id)

    def krates_by_name(self, name: str) -> Iterator[Package]:
        return (package for package in self._packages if package.name == name)

    def query_resolve(self, query: str) -> str | None:
        """Id of the last package matching a package specification."""
        try:
            spec = PackageSpec.parse(query)
        except ValueError:
            _log.warning("Failed to construct PkgSpec from string: %s", query)
            return None
        found = [package.id for package in self.krates_by_name(spec.name) if spec.matches(package)]
        return found[-1] if found else None


def package_id_licence(krates: Krates, package_id: str) -> str | None:
    package = krates.node_for_kid(package_id)
    return package.license if package is not None else None


def package_id_name_and_version(
    krates: Krates, package_id: str
) -> tuple[str, semver.Version] | None:
    package = krates.node_for_kid(package_id)
    return (package.name, package.version) if package is not None else None


def package_id_repository(krates: Krates, package_id: str) -> str | None:
    package = krates.node_for_kid(package_id)
    return package.repository if package is not None else None


def matches_ignoring_source(
    dependency: Dependency, krates: Krates, package_id: str
) -> bool | None:
    """Whether a package satisfies a dependency by name and version; None if unknown."""
    name_and_version = package_id_name_and_version(krates, package_id)
    if name_and_version is None:
        _log.warning("Failed to match (ignoring source) package: %s", package_id)
        return None
    name, version = name_and_version
    return name == dependency.name and dependency.req.matches(version)


def display_package(pattern: Pattern, krates: Krates, package_id: str) -> str:
    """Render a package through a format pattern."""
    pieces = []
    for chunk in pattern.chunks:
        if chunk.kind is ChunkKind.LICENSE:
            licence = package_id_licence(krates, package_id)
            if licence is not None:
                pieces.append(licence)
        elif chunk.kind is ChunkKind.PACKAGE:
            name_and_version = package_id_name_and_version(krates, package_id)
            if name_and_version is not None:
                name, version = name_and_version
                pieces.append(f"{name} {version}")
            else:
                _log.warning("Failed to format Package: %s", package_id)
        elif chunk.kind is ChunkKind.RAW:
            pieces.append(chunk.text or "")
        elif chunk.kind is ChunkKind.REPOSITORY:
            repository = package_id_repository(krates, package_id)
            if repository is not None:
                pieces.append(repository)
    return "".join(pieces)