"""Which kinds of dependencies besides normal ones are analysed."""

from __future__ import annotations

import enum

from geigerscan.report import DependencyKind


class ExtraDeps(enum.Enum):
    ALL = "All"
    BUILD = "Build"
    DEV = "Dev"
    NO_MORE = "NoMore"

    def allows(self, dependency_kind: DependencyKind) -> bool:
        """Whether a dependency of this kind is followed."""
        if dependency_kind is DependencyKind.NORMAL or self is ExtraDeps.ALL:
            return True
        if self is ExtraDeps.BUILD:
            return dependency_kind is DependencyKind.BUILD
        if self is ExtraDeps.DEV:
            return dependency_kind is DependencyKind.DEVELOPMENT
        return False