"""Mapping of workspace package ids and source descriptions to report types."""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath, PureWindowsPath
from urllib.parse import parse_qsl, urlsplit

from geigerscan.metadata import Metadata
from geigerscan.report import GitSource, PackageId, PathSource, RegistrySource, Source

_log = logging.getLogger(__name__)

_WINDOWS_DRIVE_RE = re.compile(r"^/[A-Za-z]:")


def handle_source_repr(source_repr: str) -> Source:
    """Turn a source description such as ``registry+https://...`` into a source."""
    pieces = source_repr.split("+")
    source_type = pieces[0]
    if source_type == "registry":
        # The registry name is not part of the description.
        return RegistrySource(name="crates.io", url=pieces[-1])
    if source_type == "git":
        parts = urlsplit(pieces[-1])
        if not parts.scheme or parts.hostname is None:
            raise ValueError(f"invalid git source URL: {pieces[-1]!r}")
        revision = next((value for key, value in parse_qsl(parts.query) if key == "rev"), None)
        if revision is None:
            raise ValueError(f"git source without a revision: {source_repr!r}")
        return GitSource(url=f"{parts.scheme}://{parts.hostname}{parts.path}", rev=revision)
    raise ValueError(f"Unrecognised source type: {source_type}")


def handle_path_source(package_id_repr: str) -> PathSource:
    """Source of a local package, from an id such as ``(path+file:///dir)``."""
    inner = package_id_repr[1:-1]
    pieces = inner.split("+file://")[1:]
    if not pieces:
        raise ValueError(f"package id without a file path: {package_id_repr!r}")
    raw_path = pieces[-1]
    if _WINDOWS_DRIVE_RE.match(raw_path):
        path = PureWindowsPath(raw_path[1:])
    else:
        path = PurePosixPath(raw_path)
    try:
        return PathSource(url=path.as_uri())
    except ValueError:
        raise ValueError(f"not an absolute file path: {raw_path!r}") from None


def to_geiger_source(metadata: Metadata, package_id: str) -> Source:
    """Source of a package in the metadata; raises ValueError if it is absent."""
    package = metadata.package(package_id)
    if package is None:
        raise ValueError(f"package not found in metadata: {package_id}")
    if package.source is not None:
        return handle_source_repr(package.source)
    return handle_path_source(package_id)


def to_geiger_package_id(metadata: Metadata, package_id: str) -> PackageId | None:
    """Report package id of a package in the metadata, or None if it is absent."""
    package = metadata.package(package_id)
    if package is None:
        _log.warning("Failed to convert PackageId: %s to Package", package_id)
        return None
    return PackageId(
        name=package.name,
        version=package.version,
        source=to_geiger_source(metadata, package_id),
    )