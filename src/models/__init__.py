"""
Models package for dskit

Contains data structures and type definitions for the packaging pipeline
and the preview server.
"""

from .paths import OutputMode, OutputRoot
from .state import BuildState, PipelineError, PipelineSpec, Stage, pipeline
from .watch import ModuleCacheEntry, NotificationTopic, WatchAction, WatchRule, watchRules_default

__all__ = [
    "BuildState",
    "PipelineError",
    "PipelineSpec",
    "Stage",
    "pipeline",
    "OutputMode",
    "OutputRoot",
    "ModuleCacheEntry",
    "NotificationTopic",
    "WatchAction",
    "WatchRule",
    "watchRules_default",
]
