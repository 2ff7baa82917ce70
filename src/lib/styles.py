"""
Stylesheet engines

Wraps the external engines used on stylesheets: libsass for compilation,
postcss + autoprefixer for vendor prefixes, and rcssmin for minification.
Compilation and minification are blocking and run in worker threads; the
prefixer runs as a subprocess.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import rcssmin
import sass

from ..config import AppSettings
from .log import LOG


Prefixer = Callable[[str], Awaitable[str]]

# Keep the prefixed and unprefixed declarations side by side; some target
# environments only understand one of them.
POSTCSS_CONFIG = "module.exports = { plugins: [require('autoprefixer')({ remove: false })] };\n"


class PrefixerError(RuntimeError):
    """Raised when the vendor-prefixing command fails"""
    pass


class Autoprefixer:
    """
    Vendor prefixing through the postcss CLI

    CSS is piped through ``<command> --config <dir>`` where ``<dir>`` holds
    a generated postcss.config.js enabling autoprefixer with
    ``remove: false``. The config directory is created inside ``root`` and
    the command runs from there, so both ``npx postcss`` and the config's
    ``require('autoprefixer')`` resolve against the project's node_modules.

    Attributes:
        command: argv prefix of the postcss CLI
        root: Project root the command runs in
        node_modules: Exported as NODE_PATH for the command
    """

    def __init__(
        self,
        command: Sequence[str],
        root: Path = Path("."),
        node_modules: Optional[Path] = None,
    ) -> None:
        self.command = list(command)
        self.root = Path(root).resolve()
        self.node_modules = Path(node_modules).resolve() if node_modules else self.root / "node_modules"

    def env_make(self) -> Dict[str, str]:
        env = dict(os.environ)
        paths = [str(self.node_modules)]
        if env.get("NODE_PATH"):
            paths.append(env["NODE_PATH"])
        env["NODE_PATH"] = os.pathsep.join(paths)
        return env

    async def __call__(self, css: str) -> str:
        with tempfile.TemporaryDirectory(prefix=".dskit-postcss-", dir=self.root) as config_dir:
            (Path(config_dir) / "postcss.config.js").write_text(POSTCSS_CONFIG, encoding="utf-8")
            process = await asyncio.create_subprocess_exec(
                *self.command, "--config", config_dir,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.root),
                env=self.env_make(),
            )
            stdout, stderr = await process.communicate(css.encode("utf-8"))
        if process.returncode != 0:
            raise PrefixerError(
                f"{' '.join(self.command)} exited with {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )
        return stdout.decode("utf-8")


def prefixer_fromSettings(settings: AppSettings) -> Optional[Prefixer]:
    """Prefixer configured by settings, or None when prefixing is disabled"""
    if not settings.autoprefix:
        return None
    return Autoprefixer(
        settings.prefixer_command,
        root=settings.path_resolve(),
        node_modules=settings.path_resolve(settings.node_modules_dir),
    )


class StyleCompiler:
    """
    Compiles one entry stylesheet to (optionally prefixed) CSS

    Attributes:
        include_paths: Extra directories searched by @import
        precision: Numeric precision passed to libsass
        prefixer: Async CSS -> CSS transform, or None to skip prefixing
    """

    def __init__(
        self,
        include_paths: Sequence[Path] = (),
        precision: int = 10,
        prefixer: Optional[Prefixer] = None,
    ) -> None:
        self.include_paths: List[str] = [str(p) for p in include_paths]
        self.precision = precision
        self.prefixer = prefixer

    def sass_compile(self, entry: Path) -> str:
        """
        Compile a Sass entry file (blocking).

        Raises:
            sass.CompileError: Syntax or import errors in the sources
        """
        return sass.compile(
            filename=str(entry),
            output_style="expanded",
            precision=self.precision,
            include_paths=self.include_paths,
        )

    async def compile(self, entry: Path) -> str:
        """Compile and prefix an entry stylesheet"""
        LOG(f"Compiling {entry}", level=2)
        css = await asyncio.to_thread(self.sass_compile, entry)
        if self.prefixer is not None:
            css = await self.prefixer(css)
        return css

    async def compile_to(self, entry: Path, output: Path) -> Path:
        """Compile an entry stylesheet and write the result to output"""
        css = await self.compile(entry)
        output.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(output.write_text, css, encoding="utf-8")
        LOG(f"Wrote {output}", level=2)
        return output


def outputName_make(entry_name: str, module_name: str) -> str:
    """
    Distribution file name for a compiled entry stylesheet.

    The leading ``index`` of the entry's base name is replaced by the
    module name and the extension becomes ``.css``.

    Example:
        >>> outputName_make("index-vf.scss", "my-design-system")
        'my-design-system-vf.css'
    """
    stem = Path(entry_name).stem
    suffix = stem[len("index"):] if stem.startswith("index") else f"-{stem}"
    return f"{module_name}{suffix}.css"


def css_minify(css: str) -> str:
    """
    Minify CSS without structural optimizations or number rounding.

    rcssmin only strips whitespace and comments (keeping ``/*!`` ones), so
    numeric values keep every digit present in the source.
    """
    return rcssmin.cssmin(css)


def minName_make(path: Path) -> Path:
    """
    Sibling path with ``.min`` appended to the base name.

    Example:
        >>> minName_make(Path("styles/site.css"))
        PosixPath('styles/site.min.css')
    """
    return path.with_name(f"{path.stem}.min{path.suffix}")
