"""
Markup generation for the preview server

Component markup comes from Python modules at
``<ui>/components/<component>/example.py`` defining a ``variants`` mapping
of variant id to a zero-argument callable returning HTML:

    variants = {
        "default": lambda: '<button class="slds-button">Go</button>',
    }

Loaded modules are kept in a process-wide MarkupCache keyed by resolved
source path. Every (re)load executes the module afresh through its file
loader; modules are never registered in sys.modules.
"""

import hashlib
import importlib.util
from pathlib import Path
from typing import Dict, Optional, Union

from loguru import logger

from ..models.watch import ModuleCacheEntry
from .components import MARKUP_MODULE
from .log import LOG


PathLike = Union[str, Path]


class MarkupError(LookupError):
    """Raised when a component or variant cannot be found"""
    pass


class MarkupCache:
    """
    Cache of loaded markup modules, keyed by resolved source path

    Entries are created lazily by get() and removed only by evict(). When
    ``serve_stale`` is set, a failed reload of an evicted module falls back
    to the last module that loaded successfully from the same path.

    Attributes:
        serve_stale: Fall back to the last good module on reload failure
    """

    def __init__(self, serve_stale: bool = False) -> None:
        self.serve_stale = serve_stale
        self._entries: Dict[Path, ModuleCacheEntry] = {}
        self._lastGood: Dict[Path, ModuleCacheEntry] = {}

    @staticmethod
    def key_make(path: PathLike) -> Path:
        return Path(path).resolve()

    def __contains__(self, path: PathLike) -> bool:
        return self.key_make(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def module_load(self, path: Path) -> ModuleCacheEntry:
        """
        Execute a markup module from its current source.

        Raises:
            OSError: The source cannot be read
            Exception: Anything the module raises while executing
        """
        digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
        spec = importlib.util.spec_from_file_location(f"dskit_markup_{digest}", path)
        if spec is None or spec.loader is None:
            raise MarkupError(f"Cannot load markup module {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        LOG(f"Loaded markup module {path}", level=2)
        return ModuleCacheEntry(path=path, module=module)

    def get(self, path: PathLike) -> ModuleCacheEntry:
        """
        Cached entry for path, loading it on first use.

        Raises:
            Exception: Load failure, unless a stale entry may be served
        """
        key = self.key_make(path)
        entry = self._entries.get(key)
        if entry is not None:
            return entry
        try:
            entry = self.module_load(key)
        except Exception as e:
            stale = self._lastGood.get(key)
            if self.serve_stale and stale is not None:
                logger.warning(f"Serving last good markup for {key}: {e!r}")
                return stale
            raise
        self._entries[key] = entry
        self._lastGood[key] = entry
        return entry

    def evict(self, path: PathLike) -> bool:
        """
        Drop the entry for path so the next get() reloads the source.

        Returns:
            True if an entry was cached
        """
        key = self.key_make(path)
        evicted = self._entries.pop(key, None) is not None
        LOG(f"Evicted {key}" if evicted else f"Nothing cached for {key}", level=2)
        return evicted


class MarkupProvider:
    """
    Renders component variants from the markup modules under a ui root

    Attributes:
        ui_root: Directory containing components/
        cache: Module cache shared with the watch dispatcher
    """

    def __init__(self, ui_root: PathLike, cache: Optional[MarkupCache] = None) -> None:
        self.ui_root = Path(ui_root)
        self.cache = cache if cache is not None else MarkupCache()

    def modulePath_get(self, component: str) -> Path:
        """
        Source path of a component's markup module.

        Raises:
            MarkupError: Invalid component id or no markup module
        """
        if not component or component in (".", "..") or "/" in component or "\\" in component:
            raise MarkupError(f"Invalid component id: {component!r}")
        path = self.ui_root / "components" / component / MARKUP_MODULE
        if not path.is_file():
            raise MarkupError(f"Unknown component: {component}")
        return path

    def markup_render(self, component: str, variant: str) -> str:
        """
        Render one variant of a component.

        Raises:
            MarkupError: Unknown component or variant
        """
        entry = self.cache.get(self.modulePath_get(component))
        render = entry.variant_get(variant)
        if render is None:
            raise MarkupError(f"Unknown variant {variant!r} of component {component!r}")
        return str(render())

    async def markup_get(self, component: str, variant: str) -> str:
        """Asynchronous markup rendering"""
        return self.markup_render(component, variant)
