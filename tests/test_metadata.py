import json
from pathlib import Path

import pytest
import semver

from geigerscan.metadata import Dependency, Metadata, Package, VersionReq
from geigerscan.report import DependencyKind

REGISTRY = "registry+https://registry.example.com/index"
APP_ID = "app 0.1.0 (path+file:///work/app)"
LIB_ID = "lib 0.2.0 (path+file:///work/lib)"
SERDE_OLD = f"serde 1.0.100 ({REGISTRY})"
SERDE_NEW = f"serde 1.0.150 ({REGISTRY})"
RAND_ID = f"rand 0.8.5 ({REGISTRY})"
CC_ID = f"cc 1.0.79 ({REGISTRY})"


def _dep(name, req, kind=None, target=None):
    return {"name": name, "req": req, "kind": kind, "target": target, "optional": False}


def _pkg(pkg_id, name, version, manifest, deps=(), source=REGISTRY):
    return {
        "id": pkg_id,
        "name": name,
        "version": version,
        "manifest_path": manifest,
        "dependencies": list(deps),
        "license": "MIT",
        "repository": None,
        "source": source,
    }


METADATA = {
    "packages": [
        _pkg(
            APP_ID,
            "app",
            "0.1.0",
            "/work/app/Cargo.toml",
            [
                _dep("serde", "^1.0"),
                _dep("rand", "^0.8", "dev"),
                _dep("cc", "^1", "build"),
                _dep("serde", "^1.0", "build"),
                _dep("missing", "^9"),
                _dep("lib", "^0.2"),
            ],
            source=None,
        ),
        _pkg(LIB_ID, "lib", "0.2.0", "/work/lib/Cargo.toml", [_dep("rand", "^0.8", "dev"), _dep("cc", "^1")], source=None),
        _pkg(SERDE_OLD, "serde", "1.0.100", "/reg/serde-1.0.100/Cargo.toml"),
        _pkg(SERDE_NEW, "serde", "1.0.150", "/reg/serde-1.0.150/Cargo.toml"),
        _pkg(RAND_ID, "rand", "0.8.5", "/reg/rand-0.8.5/Cargo.toml"),
        _pkg(CC_ID, "cc", "1.0.79", "/reg/cc-1.0.79/Cargo.toml"),
    ],
    "workspace_members": [APP_ID],
    "workspace_root": "/work/app",
    "resolve": {"root": APP_ID, "nodes": []},
}


@pytest.fixture
def metadata():
    return Metadata.from_dict(METADATA)


@pytest.mark.parametrize(
    "manifest, expected",
    [
        ("/path/to/file/Cargo.toml", Path("/path/to/file")),
        ("/", None),
    ],
)
def test_package_root(manifest, expected):
    package = Package(
        id="package_name 1.1.1",
        name="package_name",
        version=semver.Version(1, 1, 1),
        manifest_path=Path(manifest),
    )
    assert package.root() == expected


def test_root_package_root_is_manifest_parent(metadata):
    package = metadata.root_package()
    assert package.id == APP_ID
    assert package.root() == package.manifest_path.parent == Path("/work/app")


def test_root_package_from_workspace_root_without_resolve():
    data = dict(METADATA, resolve=None)
    assert Metadata.from_dict(data).root_package().id == APP_ID


def test_root_package_absent():
    data = dict(METADATA, resolve=None, workspace_root="/elsewhere")
    assert Metadata.from_dict(data).root_package() is None


def test_deps_not_replaced_root(metadata):
    assert metadata.deps_not_replaced(APP_ID, True) == [SERDE_NEW, RAND_ID, CC_ID, LIB_ID]


def test_deps_not_replaced_skips_dev_for_non_root(metadata):
    assert metadata.deps_not_replaced(APP_ID, False) == [SERDE_NEW, CC_ID, LIB_ID]
    assert metadata.deps_not_replaced(LIB_ID, False) == [CC_ID]
    assert metadata.deps_not_replaced(LIB_ID, True) == [RAND_ID, CC_ID]


def test_deps_not_replaced_unknown_package(metadata):
    assert metadata.deps_not_replaced("nothing 0.0.0", True) is None


def test_package_lookup(metadata):
    assert metadata.package(RAND_ID).name == "rand"
    assert metadata.package(RAND_ID).version == semver.Version(0, 8, 5)
    assert metadata.package("nothing") is None


def test_dependency_to_package_id_takes_last_match(metadata):
    dependency = Dependency(name="serde", req=VersionReq.parse("^1.0"))
    assert dependency.to_package_id(metadata) == SERDE_NEW
    exact = Dependency(name="serde", req=VersionReq.parse("=1.0.100"))
    assert exact.to_package_id(metadata) == SERDE_OLD
    missing = Dependency(name="serde", req=VersionReq.parse("^2"))
    assert missing.to_package_id(metadata) is None


def test_dependency_kinds_parsed(metadata):
    kinds = [d.kind for d in metadata.package(APP_ID).dependencies]
    assert kinds[:3] == [DependencyKind.NORMAL, DependencyKind.DEVELOPMENT, DependencyKind.BUILD]


def test_from_json_matches_from_dict(metadata):
    assert Metadata.from_json(json.dumps(METADATA)) == metadata


def test_missing_packages_field():
    with pytest.raises(ValueError, match="packages"):
        Metadata.from_dict({"workspace_members": []})


def test_unknown_dependency_kind():
    data = {"packages": [_pkg(APP_ID, "app", "0.1.0", "/w/Cargo.toml", [_dep("x", "1", "weird")])]}
    with pytest.raises(ValueError, match="Dependency Kind"):
        Metadata.from_dict(data)


@pytest.mark.parametrize(
    "req, version, expected",
    [
        ("^1.2.3", "1.2.3", True),
        ("^1.2.3", "1.9.0", True),
        ("^1.2.3", "1.2.2", False),
        ("^1.2.3", "2.0.0", False),
        ("1.2.3", "1.4.0", True),
        ("^0.2.3", "0.2.4", True),
        ("^0.2.3", "0.3.0", False),
        ("^0.0.3", "0.0.3", True),
        ("^0.0.3", "0.0.4", False),
        ("^0.0", "0.0.5", True),
        ("^0.0", "0.1.0", False),
        ("^0", "0.9.0", True),
        ("^0", "1.0.0", False),
        ("~1.2", "1.2.9", True),
        ("~1.2", "1.3.0", False),
        ("~1.2.3", "1.2.5", True),
        ("~1.2.3", "1.2.2", False),
        ("1.*", "1.5.0", True),
        ("1.*", "2.0.0", False),
        ("*", "3.0.0", True),
        ("*", "1.0.0-alpha", False),
        ("=1.2.3", "1.2.3", True),
        ("=1.2.3", "1.2.4", False),
        (">=1.0, <2.0", "1.5.0", True),
        (">=1.0, <2.0", "2.0.0", False),
        (">1.2", "1.3.0", True),
        (">1.2", "1.2.9", False),
        ("<=1.2.3", "1.2.3", True),
        ("<=1.2.3", "1.2.4", False),
        ("^1.0.0-alpha", "1.0.0-beta", True),
        ("^1.0.0-alpha", "1.0.0", True),
        ("^1.0.0-alpha", "1.0.1-alpha", False),
        ("^1.0.0", "1.0.1-alpha", False),
    ],
)
def test_version_req_matches(req, version, expected):
    assert VersionReq.parse(req).matches(semver.Version.parse(version)) is expected


def test_version_req_accepts_string_version():
    assert VersionReq.parse("^1").matches("1.7.2") is True


def test_version_req_text_and_equality():
    req = VersionReq.parse(" ^1.2 ")
    assert str(req) == "^1.2"
    assert req == VersionReq.parse("1.2")


@pytest.mark.parametrize("text", ["", "abc", "01.2.3", "1.*.3", "1.0-alpha", "1.0,"])
def test_version_req_invalid(text):
    with pytest.raises(ValueError):
        VersionReq.parse(text)