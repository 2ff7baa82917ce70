"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use DSKIT_ prefix (e.g., DSKIT_PREVIEW_PORT=4000).

Settings can also be loaded from a .env file in the project root.
"""

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use DSKIT_ prefix.

    Examples:
        DSKIT_PROJECT_ROOT=/src/design-system
        DSKIT_AUTOPREFIX=false
        DSKIT_VERBOSITY=2
    """

    model_config = SettingsConfigDict(
        env_prefix="DSKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Product identity
    project_root: Path = Field(
        default=Path("."),
        description="Root of the design system sources; every relative path resolves against it",
    )

    display_name: str = Field(
        default="Lightning Design System",
        description="Product name used in version banners and the README heading",
    )

    module_name: str = Field(
        default="salesforce-lightning-design-system",
        description="Canonical distribution name (compiled CSS and zip archive base name)",
    )

    published_name: str = Field(
        default="@salesforce-ux/design-system",
        description="Package name written into the distributed package.json",
    )

    flag_field: str = Field(
        default="important",
        description="Project-specific package.json flag removed from the distributed metadata",
    )

    # Source layout (relative to project_root)
    ui_dir: str = Field(default="ui", description="Component and style sources")
    site_dir: str = Field(default="site", description="Site assets (fonts, images, licenses)")
    node_modules_dir: str = Field(default="node_modules", description="Installed node packages")
    design_tokens_dir: str = Field(default="design-tokens", description="Design token tree")
    assets_dir: str = Field(default="assets", description="Dev-mode compiled assets")
    www_dir: str = Field(default=".www", description="Public site root (downloads land here)")

    # Output roots
    dist_dir: str = Field(default=".dist", description="Output root in archive mode")
    npm_dir: str = Field(default=".npm", description="Output root in package mode")

    icons_package: str = Field(
        default="@salesforce-ux/icons/dist/salesforce-lightning-design-system-icons",
        description="Icon distribution inside node_modules",
    )

    # Style engine
    sass_precision: int = Field(
        default=10,
        description="Numeric precision passed to the Sass compiler",
    )

    style_entries: List[str] = Field(
        default_factory=lambda: ["index.scss"],
        description="Entry stylesheets (relative to the distributed scss/ tree)",
    )

    autoprefix: bool = Field(
        default=True,
        description="Run compiled CSS through postcss + autoprefixer",
    )

    prefixer_command: List[str] = Field(
        default_factory=lambda: ["npx", "postcss"],
        description="argv prefix of the postcss CLI used for vendor prefixing",
    )

    # Preview server
    preview_host: str = Field(default="localhost", description="Preview server bind address")
    preview_port: int = Field(default=3003, description="Preview server port")

    framework_entry: str = Field(
        default="ui/index.scss",
        description="Stylesheet recompiled by the preview server when style sources change",
    )

    framework_output: str = Field(
        default="assets/styles",
        description="Directory receiving the recompiled framework CSS",
    )

    serve_stale_markup: bool = Field(
        default=False,
        description="Serve the last good markup module when reloading an edited one fails",
    )

    verbosity: int = Field(
        default=1,
        description="Logging verbosity level (1-3)",
    )

    def path_resolve(self, *parts: str) -> Path:
        """
        Resolve path parts against the absolute project root.

        Example:
            >>> AppSettings(project_root=Path("/repo")).path_resolve("ui", "index.scss")
            PosixPath('/repo/ui/index.scss')
        """
        return Path(self.project_root).resolve().joinpath(*parts)


# Singleton instance - import this in your code
appsettings = AppSettings()
