"""
File watching for the preview server

WatchDispatcher maps each changed file to exactly one watch rule, performs
that rule's invalidation (recompile the framework styles, evict a markup
module, or nothing) and then emits the rule's notification topic.

Events are handled one at a time: a change arriving while a dispatch is
in flight waits in the watcher until the loop comes back for it.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from loguru import logger
from watchfiles import awatch

from ..config import AppSettings
from ..models.watch import NotificationTopic, WatchAction, WatchRule, watchRules_default
from .log import LOG
from .markup import MarkupCache
from .styles import StyleCompiler, prefixer_fromSettings


Emit = Callable[[NotificationTopic], Awaitable[None]]
Recompile = Callable[[], Awaitable[object]]


def frameworkRecompiler_make(settings: AppSettings) -> Recompile:
    """
    Coroutine factory rebuilding the framework CSS used by the preview.

    Compiles ``framework_entry`` into ``framework_output/<entry stem>.css``;
    writing that file is what triggers the compiled-styles watch class.
    """
    root = Path(settings.project_root).resolve()
    compiler = StyleCompiler(
        include_paths=[root / settings.node_modules_dir],
        precision=settings.sass_precision,
        prefixer=prefixer_fromSettings(settings),
    )
    entry = root / settings.framework_entry
    output = root / settings.framework_output / f"{Path(settings.framework_entry).stem}.css"

    async def recompile() -> Path:
        return await compiler.compile_to(entry, output)

    return recompile


class WatchDispatcher:
    """
    Routes filesystem changes to invalidation actions and notifications

    Attributes:
        root: Project root; rule globs are relative to it
        emit: Coroutine broadcasting a topic to preview clients
        recompile: Coroutine rebuilding the framework styles
        cache: Markup module cache shared with the markup provider
        rules: Disjoint watch rules
    """

    def __init__(
        self,
        root: Union[str, Path],
        emit: Emit,
        recompile: Recompile,
        cache: MarkupCache,
        rules: Optional[Sequence[WatchRule]] = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.emit = emit
        self.recompile = recompile
        self.cache = cache
        self.rules: Tuple[WatchRule, ...] = tuple(rules) if rules is not None else watchRules_default()

    @classmethod
    def fromSettings(cls, settings: AppSettings, emit: Emit, cache: MarkupCache) -> "WatchDispatcher":
        return cls(
            root=settings.project_root,
            emit=emit,
            recompile=frameworkRecompiler_make(settings),
            cache=cache,
            rules=watchRules_default(
                ui_dir=settings.ui_dir,
                tokens_dir=settings.design_tokens_dir,
                styles_dir=settings.framework_output,
            ),
        )

    def relativePath_get(self, path: Union[str, Path]) -> Optional[str]:
        """Project-relative POSIX path, or None for files outside the root"""
        try:
            return Path(path).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    def rule_match(self, path: Union[str, Path]) -> Optional[WatchRule]:
        """The rule owning path, or None if no watch class covers it"""
        relative = self.relativePath_get(path)
        if relative is None:
            return None
        for rule in self.rules:
            if rule.matches(relative):
                return rule
        return None

    def watchDirs_get(self) -> List[Path]:
        """Existing directories holding the watched globs"""
        dirs: List[Path] = []
        for rule in self.rules:
            for pattern in rule.globs:
                literal = pattern.split("*", 1)[0].rstrip("/")
                candidate = self.root / literal if literal else self.root
                if candidate.is_dir() and candidate not in dirs:
                    dirs.append(candidate)
        return dirs

    async def dispatch(self, path: Union[str, Path]) -> Optional[WatchAction]:
        """
        Handle one changed file.

        A failed style recompilation is logged and does not stop the
        notification; the watch session has to outlive broken edits.

        Returns:
            Action performed, or None if the path is not watched
        """
        rule = self.rule_match(path)
        if rule is None:
            LOG(f"Ignoring change to {path}", level=3)
            return None

        LOG(f"{rule.action.value}: {path}", level=1)
        if rule.action is WatchAction.RECOMPILE_STYLES:
            try:
                await self.recompile()
            except Exception as e:
                logger.error(f"Style recompilation failed: {e}")
        elif rule.action is WatchAction.INVALIDATE_MARKUP_MODULE:
            self.cache.evict(path)

        await self.emit(rule.topic)
        return rule.action

    async def changes_dispatch(self, paths: Iterable[str]) -> None:
        """Dispatch a batch of changed paths in path order"""
        for path in sorted(paths):
            try:
                await self.dispatch(path)
            except Exception:
                logger.exception(f"Failed to dispatch change to {path}")

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Watch until stop_event is set (or forever)"""
        dirs = self.watchDirs_get()
        if not dirs:
            logger.warning(f"No watched directories exist below {self.root}")
            return
        LOG(f"Watching {', '.join(str(d) for d in dirs)}", level=2)
        async for changes in awatch(*dirs, stop_event=stop_event):
            await self.changes_dispatch({path for _, path in changes})
