"""
Build state model and pipeline helpers

Defines BuildState dataclass for the staged pipeline pattern, the Stage
wrapper, and the pipeline() / PipelineSpec drivers that run stages strictly
one after another.
"""

import dataclasses
from argparse import Namespace
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from loguru import logger

from ..config import AppSettings, appsettings
from .paths import OutputRoot


BS = TypeVar("BS", bound="BuildState")

StageFn = Callable[["BuildState"], Awaitable["BuildState"]]


class PipelineError(RuntimeError):
    """Raised when a pipeline is misused (no stages, or run twice)"""
    pass


@dataclass
class BuildState:
    """
    Central state container for the packaging pipeline (state bus pattern).

    Carries the run configuration through every stage. Stages mostly act
    on the filesystem below ``outputRoot``; the few that compute values
    hand them forward through the state.

    Attributes:
        npm: Package mode (True) or archive mode (False)
        verbosity: Logging verbosity level (1-3)
        settings: Application settings in effect for this run
        version: Product version read from the root package.json
        outputRoot: Resolved output root and mode
        manifest: Component description written to ui.json
        archivePaths: Every location the zip archive was written to
    """

    # CLI arguments
    npm: bool = field(default=False)
    verbosity: int = field(default=1)

    settings: AppSettings = field(default_factory=lambda: appsettings)
    version: str = field(default="")

    # Pipeline state
    outputRoot: Optional[OutputRoot] = field(default=None)
    manifest: Optional[dict] = field(default=None)
    archivePaths: Tuple = field(default=())

    @classmethod
    def state_createFromNamespace(
        cls: Type["BuildState"], options: Namespace, settings: Optional[AppSettings] = None
    ) -> "BuildState":
        """
        Create BuildState from an argparse Namespace.

        Filters the namespace down to the fields BuildState declares and
        resolves the output root and product version up front, so every
        stage sees the same values.

        Args:
            options: Parsed CLI arguments (npm)
            settings: Settings override; defaults to the process singleton

        Returns:
            BuildState ready for the first stage
        """
        from ..lib.paths import PathResolver

        settings = settings or appsettings
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_options = {k: v for k, v in vars(options).items() if k in valid_fields}
        filtered_options.setdefault("verbosity", settings.verbosity)

        resolver = PathResolver(settings)
        npm = bool(filtered_options.get("npm", False))
        return cls(
            **filtered_options,
            settings=settings,
            version=resolver.version_read(),
            outputRoot=resolver.outputRoot_resolve(npm),
        )

    def copy(self: BS) -> BS:
        """
        Creates a shallow copy of the BuildState instance.

        Returns:
            A new BuildState instance.
        """
        return type(self)(**self.__dict__)


@dataclass(frozen=True)
class Stage:
    """
    One discrete asynchronous unit of the build pipeline.

    ``run`` either returns the (possibly updated) state, which is the
    success signal, or raises, which is the failure signal. The exception
    is logged and re-raised unchanged.
    """
    name: str
    run: StageFn

    async def __call__(self, state: BuildState) -> BuildState:
        from ..lib.log import LOG

        LOG(f"[{self.name}]", level=1)
        try:
            return await self.run(state)
        except Exception as e:
            logger.error(f"Stage '{self.name}' failed: {e!r}")
            raise


async def pipeline(initial_state: BuildState, *stages: StageFn) -> BuildState:
    """
    Execute an asynchronous pipeline of state transformations.

    Each stage is awaited only after the previous one has returned. The
    first exception stops the run and propagates to the caller as the
    very same object; stages already completed are not rolled back.

    Args:
        initial_state: Starting BuildState
        *stages: Stage coroutines to execute in order

    Returns:
        Final BuildState after all transformations

    Example:
        final_state = await pipeline(state, clean, staticFiles_copy, archive_create)
    """
    state = initial_state
    for stage in stages:
        state = await stage(state)
    return state


@dataclass
class PipelineSpec:
    """
    Ordered, fixed sequence of stages, consumed by exactly one run.

    Attributes:
        stages: Stage descriptors in execution order
        consumed: Set once run() has been entered
    """
    stages: Tuple[Stage, ...]
    consumed: bool = field(default=False)

    def __post_init__(self) -> None:
        self.stages = tuple(self.stages)
        if not self.stages:
            raise PipelineError("A pipeline needs at least one stage")

    def names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    async def run(self, initial_state: BuildState) -> BuildState:
        """Run every stage in order; raises the first stage failure unchanged."""
        if self.consumed:
            raise PipelineError("PipelineSpec has already been run")
        self.consumed = True
        return await pipeline(initial_state, *self.stages)
