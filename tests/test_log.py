"""
Verbosity-gated logging tests
"""

import contextvars

from loguru import logger

from dskit.lib.log import LOG, state_connectToLogger
from dskit.models import BuildState


def logged(source, *calls) -> list:
    """Run LOG calls in a fresh context connected to source; return the lines"""
    lines: list = []
    sink = logger.add(lines.append, format="{function}|{message}", level="DEBUG")

    def emit_all():
        state_connectToLogger(source)
        for message, level in calls:
            LOG(message, level=level)

    try:
        contextvars.copy_context().run(emit_all)
    finally:
        logger.remove(sink)
    return [line.strip() for line in lines]


class TestLOG:
    """LOG() honours the connected verbosity"""

    def test_levels_up_to_verbosity(self):
        lines = logged(BuildState(verbosity=2), ("stage", 1), ("detail", 2), ("trace", 3))
        assert [line.split("|")[1] for line in lines] == ["stage", "detail"]

    def test_silent_when_unconnected(self):
        assert logged(None, ("stage", 1)) == []

    def test_quiet_state(self):
        assert logged(BuildState(verbosity=0), ("stage", 1)) == []

    def test_caller_is_reported(self):
        lines = logged(BuildState(verbosity=1), ("stage", 1))
        assert lines == ["emit_all|stage"]
