"""
dskit - design system packaging and live preview

Build pipeline stages, stylesheet engines, and the preview server.
"""

__version__ = "1.0.0"

from .log import LOG, state_connectToLogger
from .paths import PathResolver
from .stages import packagingPipeline_make
from .markup import MarkupCache, MarkupProvider
from .watch import WatchDispatcher

__all__ = [
    "LOG",
    "state_connectToLogger",
    "PathResolver",
    "packagingPipeline_make",
    "MarkupCache",
    "MarkupProvider",
    "WatchDispatcher",
    "__version__",
]
