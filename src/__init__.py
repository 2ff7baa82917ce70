"""
dskit - design system packaging and live preview

Packages a front-end design system into an npm tree and a zip archive,
and serves a live component preview while watching the sources.
"""

__version__ = "1.0.0"

from .lib import LOG, state_connectToLogger, PathResolver, packagingPipeline_make, MarkupCache, WatchDispatcher

__all__ = [
    "LOG",
    "state_connectToLogger",
    "PathResolver",
    "packagingPipeline_make",
    "MarkupCache",
    "WatchDispatcher",
    "__version__",
]
