"""
dskit console logging

Two kinds of output share one loguru sink on stderr:

- LOG(message, level) is progress chatter, printed only when the
  verbosity of the connected context is at least ``level``. The build
  connects its BuildState (``dskit-dist``); the preview server connects
  itself (``dskit-preview``). Both take their verbosity from
  ``DSKIT_VERBOSITY``.
- loguru's ``logger.error`` / ``logger.warning`` / ``logger.exception``
  are used directly for failures and are never gated: a failed stage, a
  broken style edit in the watch session, stale markup being served.

What each level shows:
    1  stage names as they start ("[compile styles]"), the build target,
       the archive paths, one line per watched change
    2  per-stage detail: files copied, banners written, markup modules
       loaded and evicted, websocket clients and emits
    3  ignored filesystem events, collected documentation comments

Connecting happens once per run, before the first stage or before the
server starts; asyncio tasks created afterwards copy the context and see
the same verbosity:

    from dskit.lib.log import LOG, state_connectToLogger

    state_connectToLogger(state)
    LOG(f"{state.settings.display_name} {state.version}", level=1)
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

# BuildState or PreviewServer of the current run
_verbositySource: ContextVar[Optional[Any]] = ContextVar('dskit_verbosity_source', default=None)

# Function column shows the LOG() caller (the stage or handler), not LOG itself
logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()  # Remove default handler
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Make ``state.verbosity`` the threshold for LOG() in this context.

    Args:
        state: BuildState for a packaging run, PreviewServer for a
            preview session
    """
    _verbositySource.set(state)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Print message when the connected verbosity is at least level.

    Silent when nothing is connected, e.g. stages driven directly from
    tests with a bare BuildState never connected to the logger.

    Args:
        message: Log message to display
        level: 1 progress, 2 detail, 3 trace
        **kwargs: Passed to loguru for message formatting
    """
    source = _verbositySource.get()

    if source is not None and getattr(source, 'verbosity', 0) >= level:
        logger.opt(depth=1).debug(message, **kwargs)
