"""Command line arguments of the scanner."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence, TypeVar

from geigerscan.print_config import OutputFormat

HELP = """Detects usage of unsafe Rust in a Rust crate and its dependencies.

USAGE:
    cargo geiger [OPTIONS]

OPTIONS:
    -p, --package <SPEC>          Package to be used as the root of the tree.
        --features <FEATURES>     Space-separated list of features to activate.
        --all-features            Activate all available features.
        --no-default-features     Do not activate the `default` feature.
        --target <TARGET>         Set the target triple.
        --all-targets             Return dependencies for all targets. By
                                  default only the host target is matched.
        --manifest-path <PATH>    Path to Cargo.toml.
    -i, --invert                  Invert the tree direction.
        --no-indent               Display the dependencies as a list (rather
                                  than a tree).
        --prefix-depth            Display the dependencies as a list (rather
                                  than a tree), but prefixed with the depth.
    -a, --all                     Don't truncate dependencies that have already
                                  been displayed.
    --format <FORMAT>             Format string used for printing dependencies
                                  [default: {p}].
    --output-format               Output format for the report: Ascii, GitHubMarkdown,
                                  Json, Utf8, Ratio [default: Utf8]
    --update-readme               Writes output to ./README.md. Looks for a Safety
                                  Report section, replaces if found, adds if not.
                                  Throws an error if no README.md exists.
        --readme-path <PATH>      Path of README.md file to be written to.
        --section-name <NAME>     The section name in the README.md to be written
                                  to.
    -v, --verbose                 Use verbose output (-vv very verbose/build.rs
                                  output).
    -q, --quiet                   No output printed to stdout other than the
                                  tree.
        --color <WHEN>            Coloring: auto, always, never.
        --frozen                  Require Cargo.lock and cache are up to date.
        --locked                  Require Cargo.lock is up to date.
        --offline                 Run without accessing the network.
    -Z \"<FLAG>...\"                Unstable (nightly-only) flags to Cargo.
        --include-tests           Count unsafe usage in tests.
        --build-dependencies      Also analyze build dependencies.
        --dev-dependencies        Also analyze dev dependencies.
        --all-dependencies        Analyze all dependencies, including build and
                                  dev.
        --forbid-only             Don't build or clean anything, only scan
                                  entry point .rs source files for.
                                  forbid(unsafe_code) flags. This is
                                  significantly faster than the default
                                  scanning mode.
    -h, --help                    Prints help information.
    -V, --version                 Prints version information.
"""

T = TypeVar("T")


class ArgsError(ValueError):
    """Raised when the command line cannot be parsed."""


class Verbosity(enum.Enum):
    VERBOSE = "Verbose"
    NORMAL = "Normal"
    QUIET = "Quiet"


@dataclass
class DepsArgs:
    all_deps: bool = False
    build_deps: bool = False
    dev_deps: bool = False


@dataclass
class FeaturesArgs:
    all_features: bool = False
    features: list[str] = field(default_factory=list)
    no_default_features: bool = False


@dataclass
class TargetArgs:
    all_targets: bool = False
    target: str | None = None


@dataclass
class ReadmeArgs:
    readme_path: Path | None = None
    section_name: str | None = None
    update_readme: bool = False


class _RawArgs:
    """Consumes flags and options from an argument list, in any order."""

    def __init__(self, argv: Sequence[str]) -> None:
        self._args = list(argv)

    def contains(self, *keys: str) -> bool:
        for index, arg in enumerate(self._args):
            if arg in keys:
                del self._args[index]
                return True
        return False

    def opt_value(self, *keys: str, convert: Callable[[str], T] = str) -> T | None:
        for index, arg in enumerate(self._args):
            if arg in keys:
                if index + 1 >= len(self._args):
                    raise ArgsError(f"the '{arg}' option doesn't have an associated value")
                value = self._args[index + 1]
                del self._args[index : index + 2]
                return self._convert(arg, value, convert)
            for key in keys:
                if key.startswith("--") and arg.startswith(key + "="):
                    del self._args[index]
                    return self._convert(key, arg[len(key) + 1 :], convert)
        return None

    @staticmethod
    def _convert(key: str, value: str, convert: Callable[[str], T]) -> T:
        try:
            return convert(value)
        except ValueError as error:
            raise ArgsError(f"failed to parse '{value}' for '{key}': {error}") from None


def parse_features(raw_features: str | None) -> list[str]:
    """Split a space separated feature list, dropping empty entries."""
    return [feature for feature in (raw_features or "").split(" ") if feature]


@dataclass
class Args:
    """Options given on the command line."""

    all: bool = False
    color: str | None = None
    deps_args: DepsArgs = field(default_factory=DepsArgs)
    features_args: FeaturesArgs = field(default_factory=FeaturesArgs)
    forbid_only: bool = False
    format: str = ""
    frozen: bool = False
    help: bool = False
    include_tests: bool = False
    invert: bool = False
    locked: bool = False
    manifest_path: Path | None = None
    no_indent: bool = False
    offline: bool = False
    output_format: OutputFormat = OutputFormat.UTF8
    package: str | None = None
    prefix_depth: bool = False
    quiet: bool = False
    readme_args: ReadmeArgs = field(default_factory=ReadmeArgs)
    target_args: TargetArgs = field(default_factory=TargetArgs)
    unstable_flags: list[str] = field(default_factory=list)
    verbosity: Verbosity = Verbosity.VERBOSE
    version: bool = False

    @classmethod
    def parse_args(cls, argv: Sequence[str] | None = None) -> Args:
        """Parse command line arguments; raises ArgsError on a bad value."""
        raw = _RawArgs(sys.argv[1:] if argv is None else argv)

        all_ = raw.contains("-a", "--all")
        color = raw.opt_value("--color")
        deps_args = DepsArgs(
            all_deps=raw.contains("--all-dependencies"),
            build_deps=raw.contains("--build-dependencies"),
            dev_deps=raw.contains("--dev-dependencies"),
        )
        features_args = FeaturesArgs(
            all_features=raw.contains("--all-features"),
            features=parse_features(raw.opt_value("--features")),
            no_default_features=raw.contains("--no-default-features"),
        )
        forbid_only = raw.contains("-f", "--forbid-only")
        format_string = raw.opt_value("--format")
        frozen = raw.contains("--frozen")
        help_ = raw.contains("-h", "--help")
        include_tests = raw.contains("--include-tests")
        invert = raw.contains("-i", "--invert")
        locked = raw.contains("--locked")
        manifest_path = raw.opt_value("--manifest-path", convert=Path)
        no_indent = raw.contains("--no-indent")
        offline = raw.contains("--offline")
        package = raw.opt_value("-p", "--package")
        prefix_depth = raw.contains("--prefix-depth")
        quiet = raw.contains("-q", "--quiet")
        readme_args = ReadmeArgs(
            readme_path=raw.opt_value("--readme-path", convert=Path),
            section_name=raw.opt_value("--section-name"),
            update_readme=raw.contains("--update-readme"),
        )
        target_args = TargetArgs(
            all_targets=raw.contains("--all-targets"),
            target=raw.opt_value("--target"),
        )
        unstable = raw.opt_value("-Z")
        unstable_flags = unstable.split(" ") if unstable is not None else []
        version = raw.contains("-V", "--version")
        very_verbose = raw.contains("-vv")
        verbose = raw.contains("-v", "--verbose")
        if very_verbose:
            verbosity = Verbosity.VERBOSE
        elif verbose:
            verbosity = Verbosity.NORMAL
        else:
            verbosity = Verbosity.QUIET
        output_format = raw.opt_value("--output-format", convert=OutputFormat.from_str)

        args = cls(
            all=all_,
            color=color,
            deps_args=deps_args,
            features_args=features_args,
            forbid_only=forbid_only,
            format=format_string if format_string is not None else "{p}",
            frozen=frozen,
            help=help_,
            include_tests=include_tests,
            invert=invert,
            locked=locked,
            manifest_path=manifest_path,
            no_indent=no_indent,
            offline=offline,
            output_format=output_format if output_format is not None else OutputFormat.UTF8,
            package=package,
            prefix_depth=prefix_depth,
            quiet=quiet,
            readme_args=readme_args,
            target_args=target_args,
            unstable_flags=unstable_flags,
            verbosity=verbosity,
            version=version,
        )

        if args.readme_args.update_readme and args.output_format is not OutputFormat.GITHUB_MARKDOWN:
            print(
                f"OutputFormat has been specified as {args.output_format.value}, but the "
                "`--update-readme` flag has also been provided. To ensure the report written "
                "to the README.md is correct, a reduced charset will be used.",
                file=sys.stderr,
            )
            args.output_format = OutputFormat.GITHUB_MARKDOWN

        return args