from pathlib import Path

import pytest

from geigerscan.args import Args, ArgsError, Verbosity, parse_features
from geigerscan.print_config import OutputFormat


@pytest.mark.parametrize(
    "argv, expected_all, expected_output_format, expected_verbosity",
    [
        ([], False, OutputFormat.UTF8, Verbosity.QUIET),
        (["--all"], True, OutputFormat.UTF8, Verbosity.QUIET),
        (["--output-format", "Ascii"], False, OutputFormat.ASCII, Verbosity.QUIET),
        (["-v"], False, OutputFormat.UTF8, Verbosity.NORMAL),
        (["-vv"], False, OutputFormat.UTF8, Verbosity.VERBOSE),
        (["--update-readme"], False, OutputFormat.GITHUB_MARKDOWN, Verbosity.QUIET),
        (
            ["--update-readme", "--output-format", "Ascii"],
            False,
            OutputFormat.GITHUB_MARKDOWN,
            Verbosity.QUIET,
        ),
    ],
)
def test_parse_args(argv, expected_all, expected_output_format, expected_verbosity):
    args = Args.parse_args(argv)
    assert args.all == expected_all
    assert args.output_format == expected_output_format
    assert args.verbosity == expected_verbosity


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("test some features", ["test", "some", "features"]),
        ("test", ["test"]),
        ("", []),
        (None, []),
    ],
)
def test_parse_features(raw, expected):
    assert parse_features(raw) == expected


def test_default_format_is_package():
    assert Args.parse_args([]).format == "{p}"


def test_update_readme_warns_on_stderr(capsys):
    Args.parse_args(["--update-readme", "--output-format", "Ascii"])
    assert "Ascii" in capsys.readouterr().err


def test_values_and_flags():
    args = Args.parse_args(
        [
            "--features",
            "a b",
            "-Z",
            "x y",
            "--manifest-path",
            "dir/Cargo.toml",
            "-p",
            "pkg",
            "--target",
            "triple",
            "--all-targets",
            "--build-dependencies",
            "-i",
            "--format={l}",
        ]
    )
    assert args.features_args.features == ["a", "b"]
    assert args.unstable_flags == ["x", "y"]
    assert args.manifest_path == Path("dir/Cargo.toml")
    assert args.package == "pkg"
    assert args.target_args.target == "triple"
    assert args.target_args.all_targets is True
    assert args.deps_args.build_deps is True
    assert args.deps_args.dev_deps is False
    assert args.invert is True
    assert args.format == "{l}"


def test_invalid_output_format():
    with pytest.raises(ArgsError):
        Args.parse_args(["--output-format", "Bogus"])


def test_option_without_value():
    with pytest.raises(ArgsError):
        Args.parse_args(["--color"])