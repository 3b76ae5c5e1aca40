"""Dependency graph of a workspace, filtered by dependency kind and target platform."""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Union

from geigerscan.args import Args, DepsArgs, TargetArgs
from geigerscan.extra_deps import ExtraDeps
from geigerscan.krates import Krates, matches_ignoring_source
from geigerscan.metadata import Dependency, Metadata, Package
from geigerscan.report import DependencyKind

_log = logging.getLogger(__name__)

_TOKEN_RE = re.compile(
    r'\s*(?:(?P<punct>[(),=])|(?P<string>"[^"]*")|(?P<ident>[A-Za-z_][A-Za-z0-9_]*))'
)
_PLATFORM_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _tokenize(text: str) -> deque[tuple[str, str]]:
    tokens: deque[tuple[str, str]] = deque()
    pos = 0
    while text[pos:].strip():
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ValueError(f"unexpected character in cfg expression: {text[pos:].strip()!r}")
        kind = match.lastgroup
        value = match.group(kind)
        if kind == "string":
            value = value[1:-1]
        tokens.append((kind, value))
        pos = match.end()
    return tokens


@dataclass(frozen=True)
class Cfg:
    """A configuration flag such as ``unix`` or ``target_os="linux"``."""

    name: str
    value: str | None = None

    @classmethod
    def parse(cls, text: str) -> Cfg:
        tokens = _tokenize(text)
        cfg = _parse_cfg(tokens, text)
        if tokens:
            raise ValueError(f"unexpected content after cfg: {text!r}")
        return cfg

    def __str__(self) -> str:
        return self.name if self.value is None else f'{self.name}="{self.value}"'


@dataclass(frozen=True)
class _Not:
    expr: _Expr


@dataclass(frozen=True)
class _All:
    exprs: tuple[_Expr, ...]


@dataclass(frozen=True)
class _Any:
    exprs: tuple[_Expr, ...]


_Expr = Union[Cfg, _Not, _All, _Any]


def _evaluate(expr: _Expr, cfgs: Iterable[Cfg]) -> bool:
    cfgs = list(cfgs)
    if isinstance(expr, _Not):
        return not _evaluate(expr.expr, cfgs)
    if isinstance(expr, _All):
        return all(_evaluate(e, cfgs) for e in expr.exprs)
    if isinstance(expr, _Any):
        return any(_evaluate(e, cfgs) for e in expr.exprs)
    return expr in cfgs


def _expect(tokens: deque[tuple[str, str]], value: str, text: str) -> None:
    if not tokens or tokens[0] != ("punct", value):
        raise ValueError(f"expected `{value}` in cfg expression: {text!r}")
    tokens.popleft()


def _parse_cfg(tokens: deque[tuple[str, str]], text: str) -> Cfg:
    if not tokens or tokens[0][0] != "ident":
        raise ValueError(f"expected identifier in cfg expression: {text!r}")
    _, name = tokens.popleft()
    if tokens and tokens[0] == ("punct", "="):
        tokens.popleft()
        if not tokens or tokens[0][0] != "string":
            raise ValueError(f"expected a string after `=` in cfg expression: {text!r}")
        _, value = tokens.popleft()
        return Cfg(name, value)
    return Cfg(name)


def _parse_list(tokens: deque[tuple[str, str]], text: str) -> tuple[_Expr, ...]:
    _expect(tokens, "(", text)
    exprs: list[_Expr] = []
    while tokens and tokens[0] != ("punct", ")"):
        exprs.append(_parse_expr(tokens, text))
        if tokens and tokens[0] == ("punct", ","):
            tokens.popleft()
        elif not tokens or tokens[0] != ("punct", ")"):
            raise ValueError(f"expected `,` or `)` in cfg expression: {text!r}")
    _expect(tokens, ")", text)
    return tuple(exprs)


def _parse_expr(tokens: deque[tuple[str, str]], text: str) -> _Expr:
    if (
        len(tokens) > 1
        and tokens[0][0] == "ident"
        and tokens[0][1] in ("all", "any", "not")
        and tokens[1] == ("punct", "(")
    ):
        _, keyword = tokens.popleft()
        if keyword == "not":
            _expect(tokens, "(", text)
            inner = _parse_expr(tokens, text)
            _expect(tokens, ")", text)
            return _Not(inner)
        exprs = _parse_list(tokens, text)
        return _All(exprs) if keyword == "all" else _Any(exprs)
    return _parse_cfg(tokens, text)


@dataclass(frozen=True)
class Platform:
    """Target of a dependency: a target name or a ``cfg(...)`` expression."""

    name: str | None = None
    expr: _Expr | None = None

    @classmethod
    def parse(cls, text: str) -> Platform:
        if text.startswith("cfg(") and text.endswith(")"):
            inner = text[4:-1]
            tokens = _tokenize(inner)
            expr = _parse_expr(tokens, inner)
            if tokens:
                raise ValueError(f"unexpected content in cfg expression: {text!r}")
            return cls(expr=expr)
        if not _PLATFORM_NAME_RE.match(text):
            raise ValueError(f"invalid target platform name: {text!r}")
        return cls(name=text)

    def matches(self, target: str, cfgs: Iterable[Cfg]) -> bool:
        if self.name is not None:
            return self.name == target
        assert self.expr is not None
        return _evaluate(self.expr, cfgs)


@dataclass
class Graph:
    """Packages as nodes and dependencies as edges labelled with their kind."""

    packages: list[str] = field(default_factory=list)
    nodes: dict[str, int] = field(default_factory=dict)
    edges: list[tuple[int, int, DependencyKind]] = field(default_factory=list)

    def add_node(self, package_id: str) -> int:
        index = len(self.packages)
        self.packages.append(package_id)
        self.nodes[package_id] = index
        return index

    def add_edge(self, source: int, target: int, kind: DependencyKind) -> None:
        self.edges.append((source, target, kind))


@dataclass(frozen=True)
class _GraphConfiguration:
    target: str | None
    cfgs: list[Cfg] | None
    extra_deps: ExtraDeps


def build_graph_prerequisites(
    config_host: str, deps_args: DepsArgs, target_args: TargetArgs
) -> tuple[ExtraDeps, str | None]:
    """Kinds of dependencies to follow and the target to match, if any."""
    if deps_args.all_deps:
        extra_deps = ExtraDeps.ALL
    elif deps_args.build_deps:
        extra_deps = ExtraDeps.BUILD
    elif deps_args.dev_deps:
        extra_deps = ExtraDeps.DEV
    else:
        extra_deps = ExtraDeps.NO_MORE

    if target_args.all_targets:
        target = None
    else:
        target = target_args.target if target_args.target is not None else config_host
    return extra_deps, target


def _target_allows(dependency: Dependency, configuration: _GraphConfiguration) -> bool:
    if dependency.target is None or configuration.target is None:
        return True
    if configuration.cfgs is None:
        return False
    return Platform.parse(dependency.target).matches(configuration.target, configuration.cfgs)


def _filter_dependencies(
    krates: Krates,
    dependency_package_id: str,
    configuration: _GraphConfiguration,
    package: Package,
) -> list[Dependency]:
    return [
        dependency
        for dependency in package.dependencies
        if matches_ignoring_source(dependency, krates, dependency_package_id)
        and configuration.extra_deps.allows(dependency.kind)
        and _target_allows(dependency, configuration)
    ]


def build_graph(
    args: Args,
    metadata: Metadata,
    krates: Krates,
    config_host: str,
    cfgs: list[Cfg] | None,
    root_package_id: str,
) -> Graph:
    """Graph of the packages reachable from the root package."""
    extra_deps, target = build_graph_prerequisites(config_host, args.deps_args, args.target_args)
    configuration = _GraphConfiguration(target=target, cfgs=cfgs, extra_deps=extra_deps)

    graph = Graph()
    graph.add_node(root_package_id)
    pending = [root_package_id]

    while pending:
        package_id = pending.pop()
        index = graph.nodes[package_id]
        package = krates.node_for_kid(package_id)
        dependency_ids = metadata.deps_not_replaced(package_id, package_id == root_package_id)
        if package is None or dependency_ids is None:
            _log.warning(
                "Failed to add package dependencies to graph for Package Id: %s", package_id
            )
            continue
        for dependency_id in dependency_ids:
            for dependency in _filter_dependencies(krates, dependency_id, configuration, package):
                dependency_index = graph.nodes.get(dependency_id)
                if dependency_index is None:
                    pending.append(dependency_id)
                    dependency_index = graph.add_node(dependency_id)
                graph.add_edge(index, dependency_index, dependency.kind)

    return graph