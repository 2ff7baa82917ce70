"""
Pipeline driver tests

Sequential execution, fail-fast behavior and single-use pipeline specs.
"""

import asyncio
from argparse import Namespace

import pytest

from dskit.models import BuildState, OutputMode, PipelineError, PipelineSpec, Stage, pipeline


def recordingStage(name: str, log: list, delay: float = 0.0) -> Stage:
    """Stage that records its start and end around an await"""
    async def run(state: BuildState) -> BuildState:
        log.append(f"start:{name}")
        await asyncio.sleep(delay)
        log.append(f"end:{name}")
        return state
    return Stage(name, run)


def failingStage(name: str, error: BaseException, log: list) -> Stage:
    async def run(state: BuildState) -> BuildState:
        log.append(f"start:{name}")
        raise error
    return Stage(name, run)


class TestSequentialExecution:
    """Each stage starts only after the previous one has finished"""

    @pytest.mark.asyncio
    async def test_stages_never_overlap(self):
        """A slow stage still finishes before the next one starts"""
        log: list = []
        spec = PipelineSpec(stages=(
            recordingStage("one", log, delay=0.02),
            recordingStage("two", log),
            recordingStage("three", log, delay=0.01),
        ))
        await spec.run(BuildState())

        assert log == [
            "start:one", "end:one",
            "start:two", "end:two",
            "start:three", "end:three",
        ]

    @pytest.mark.asyncio
    async def test_state_flows_between_stages(self):
        """Each stage receives the state returned by the previous one"""
        async def versioned(state: BuildState) -> BuildState:
            newstate = state.copy()
            newstate.version = "9.9.9"
            return newstate

        async def check(state: BuildState) -> BuildState:
            assert state.version == "9.9.9"
            return state

        final = await pipeline(BuildState(), versioned, check)
        assert final.version == "9.9.9"

    def test_stage_names(self):
        """Stage names keep their declared order"""
        log: list = []
        spec = PipelineSpec(stages=[recordingStage(n, log) for n in ("a", "b", "c")])
        assert spec.names() == ("a", "b", "c")


class TestFailFast:
    """The first failure stops the pipeline and reaches the caller unchanged"""

    @pytest.mark.asyncio
    async def test_no_stage_runs_after_failure(self):
        log: list = []
        error = OSError("disk full")
        spec = PipelineSpec(stages=(
            recordingStage("one", log),
            failingStage("two", error, log),
            recordingStage("three", log),
        ))

        with pytest.raises(OSError):
            await spec.run(BuildState())

        assert log == ["start:one", "end:one", "start:two"]

    @pytest.mark.asyncio
    async def test_failure_identity_preserved(self):
        """The exception object raised by the stage is the one the caller sees"""
        log: list = []
        error = ValueError("bad token file")
        spec = PipelineSpec(stages=(failingStage("only", error, log),))

        with pytest.raises(ValueError) as excinfo:
            await spec.run(BuildState())

        assert excinfo.value is error

    @pytest.mark.asyncio
    async def test_completed_stages_not_rolled_back(self, tmp_path):
        """Effects of stages before the failure stay on disk"""
        marker = tmp_path / "written.txt"

        async def write(state: BuildState) -> BuildState:
            marker.write_text("done")
            return state

        spec = PipelineSpec(stages=(
            Stage("write", write),
            failingStage("boom", RuntimeError("boom"), []),
        ))
        with pytest.raises(RuntimeError):
            await spec.run(BuildState())

        assert marker.read_text() == "done"


class TestPipelineSpec:
    """Construction and single-use rules"""

    def test_empty_pipeline_rejected(self):
        with pytest.raises(PipelineError):
            PipelineSpec(stages=())

    @pytest.mark.asyncio
    async def test_spec_is_consumed_once(self):
        log: list = []
        spec = PipelineSpec(stages=(recordingStage("one", log),))
        await spec.run(BuildState())

        with pytest.raises(PipelineError):
            await spec.run(BuildState())
        assert log == ["start:one", "end:one"]

    @pytest.mark.asyncio
    async def test_consumed_even_after_failure(self):
        spec = PipelineSpec(stages=(failingStage("boom", RuntimeError("x"), []),))
        with pytest.raises(RuntimeError):
            await spec.run(BuildState())
        with pytest.raises(PipelineError):
            await spec.run(BuildState())


class TestBuildState:
    """State creation from CLI options"""

    def test_archive_mode_by_default(self, settings, project):
        state = BuildState.state_createFromNamespace(Namespace(npm=False), settings)

        assert state.version == "2.4.1"
        assert state.outputRoot.mode is OutputMode.ARCHIVE
        assert state.outputRoot.path == project.resolve() / ".dist"

    def test_npm_flag_selects_package_mode(self, settings, project):
        state = BuildState.state_createFromNamespace(Namespace(npm=True), settings)

        assert state.npm is True
        assert state.outputRoot.mode is OutputMode.PACKAGE
        assert state.outputRoot.path == project.resolve() / ".npm"

    def test_copy_is_independent(self):
        state = BuildState(version="1.0.0")
        newstate = state.copy()
        newstate.version = "2.0.0"
        assert state.version == "1.0.0"
