"""
Watch and cache models for the preview server

Defines the closed set of notification topics, the invalidation actions a
filesystem change can map to, and the rules binding path globs to actions.
"""

from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path
from types import ModuleType
from typing import Optional, Tuple


class NotificationTopic(Enum):
    """Topics broadcast to connected preview clients"""
    COMMENTS = "comments"
    MARKUP = "markup"
    STYLES = "styles"


class WatchAction(Enum):
    """
    Invalidation performed for a changed file

    RECOMPILE_STYLES: style or token source changed, rebuild the framework CSS
    INVALIDATE_MARKUP_MODULE: markup generator changed, evict its cache entry
    PASSTHROUGH_NOTIFY: a derived artifact changed, only notify clients
    """
    RECOMPILE_STYLES = "recompile-styles"
    INVALIDATE_MARKUP_MODULE = "invalidate-markup-module"
    PASSTHROUGH_NOTIFY = "passthrough-notify"


@dataclass(frozen=True)
class WatchRule:
    """
    Maps a set of path globs to one invalidation action

    Globs are matched against the project-root-relative POSIX path. ``*``
    crosses directory separators, so ``ui/**/*.scss`` also matches nested
    files; the leading directories in each glob keep rules disjoint.

    Attributes:
        action: Invalidation action tag
        globs: Path globs relative to the project root
        topic: Topic emitted once the action has run
    """
    action: WatchAction
    globs: Tuple[str, ...]
    topic: NotificationTopic

    def matches(self, relative_path: str) -> bool:
        """
        Check if a project-relative path belongs to this rule

        Args:
            relative_path: POSIX path relative to the project root

        Returns:
            True if any glob matches
        """
        return any(fnmatchcase(relative_path, pattern) for pattern in self.globs)


def globs_below(directory: str, extension: str) -> Tuple[str, ...]:
    """Globs for files with ``extension`` directly in or anywhere below ``directory``"""
    directory = directory.strip("/")
    return (f"{directory}/*{extension}", f"{directory}/**/*{extension}")


def watchRules_default(
    ui_dir: str = "ui",
    tokens_dir: str = "design-tokens",
    styles_dir: str = "assets/styles",
) -> Tuple[WatchRule, ...]:
    """
    The three disjoint watch classes used by the preview server

    Classes are kept disjoint by extension: Sass sources and YAML tokens,
    Python markup generators, compiled CSS.
    """
    return (
        WatchRule(
            action=WatchAction.RECOMPILE_STYLES,
            globs=globs_below(ui_dir, ".scss") + globs_below(tokens_dir, ".yml"),
            topic=NotificationTopic.COMMENTS,
        ),
        WatchRule(
            action=WatchAction.INVALIDATE_MARKUP_MODULE,
            globs=globs_below(ui_dir, ".py"),
            topic=NotificationTopic.MARKUP,
        ),
        WatchRule(
            action=WatchAction.PASSTHROUGH_NOTIFY,
            globs=(f"{styles_dir.strip('/')}/*.css",),
            topic=NotificationTopic.STYLES,
        ),
    )


@dataclass
class ModuleCacheEntry:
    """
    Loaded markup generator for one source file

    Attributes:
        path: Resolved source file path (cache key)
        module: Module object executed from the source
    """
    path: Path
    module: ModuleType

    def variant_get(self, variant_id: str) -> Optional[object]:
        """Return the variant callable or None"""
        variants = getattr(self.module, "variants", None) or {}
        return variants.get(variant_id)
