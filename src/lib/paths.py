"""
Path resolution for the packaging pipeline and the preview server

Every source path resolves against the fixed project root from settings;
the output root depends on the selected mode.
"""

import json
from pathlib import Path
from typing import Optional

from ..config import AppSettings, appsettings
from ..models.paths import OutputMode, OutputRoot


class PathResolver:
    """
    Resolves project source directories and the output root

    Attributes:
        settings: Settings providing the project root and directory names
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or appsettings

    @property
    def root(self) -> Path:
        return Path(self.settings.project_root).resolve()

    @property
    def ui(self) -> Path:
        return self.root / self.settings.ui_dir

    @property
    def site(self) -> Path:
        return self.root / self.settings.site_dir

    @property
    def node_modules(self) -> Path:
        return self.root / self.settings.node_modules_dir

    @property
    def designTokens(self) -> Path:
        return self.root / self.settings.design_tokens_dir

    @property
    def assets(self) -> Path:
        return self.root / self.settings.assets_dir

    @property
    def www(self) -> Path:
        return self.root / self.settings.www_dir

    @property
    def downloads(self) -> Path:
        """Public download location receiving the second copy of the archive"""
        return self.www / "assets" / "downloads"

    def outputRoot_resolve(self, npm: bool) -> OutputRoot:
        """
        Resolve the output root for a run.

        Args:
            npm: True selects package mode, False archive mode

        Returns:
            OutputRoot with absolute path and mode
        """
        if npm:
            return OutputRoot(path=self.root / self.settings.npm_dir, mode=OutputMode.PACKAGE)
        return OutputRoot(path=self.root / self.settings.dist_dir, mode=OutputMode.ARCHIVE)

    def version_read(self) -> str:
        """
        Read the product version from the root package.json.

        Raises:
            FileNotFoundError: package.json missing
            KeyError: package.json has no version field
        """
        with open(self.root / "package.json", "r", encoding="utf-8") as f:
            return json.load(f)["version"]
