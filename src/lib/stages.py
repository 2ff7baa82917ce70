"""
Packaging stages

Each stage is a coroutine ``(BuildState) -> BuildState`` wrapped in a Stage.
Returning is the success signal; any filesystem or engine exception is
the failure signal and is propagated unchanged. No stage retries.

packagingPipeline_make() assembles them in their fixed order:

    clean -> root files -> package.json -> scss -> icons -> fonts -> images
    -> swatches -> design tokens -> component tokens -> compile -> minify
    -> banners -> README -> ui.json -> zip
"""

import asyncio
import json
import re
import shutil
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..models.paths import OutputRoot
from ..models.state import BuildState, PipelineSpec, Stage
from .components import components_describe
from .files import files_glob, text_prepend, tree_copy
from .log import LOG
from .paths import PathResolver
from .styles import StyleCompiler, css_minify, minName_make, outputName_make, prefixer_fromSettings


ROOT_FILES: List[str] = ["package.json", "README-dist.md", "RELEASENOTES*"]

# package.json fields that only matter to the source repository
STRIPPED_FIELDS: List[str] = [
    "scripts",
    "dependencies",
    "devDependencies",
    "optionalDependencies",
    "engines",
]

README_SOURCE = "README-dist.md"
README_OUTPUT = "README.md"
MANIFEST_NAME = "ui.json"

SourceFn = Callable[[PathResolver], Path]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def metadata_derive(metadata: Dict[str, Any], published_name: str, flag_field: str) -> Dict[str, Any]:
    """
    Published form of a package.json record.

    Returns a new dict; the source record is left untouched.

    Args:
        metadata: Parsed source package.json
        published_name: Value for the ``name`` field
        flag_field: Project-specific flag removed with the other fields

    Returns:
        Derived metadata without scripts, dependency lists, engines or flag
    """
    derived = dict(metadata)
    derived["name"] = published_name
    for key in STRIPPED_FIELDS + [flag_field]:
        derived.pop(key, None)
    return derived


def version_sanitize(version: str) -> str:
    """
    File-name safe version string.

    Each run of whitespace and parentheses becomes a single underscore;
    underscores left at either end are dropped.

    Example:
        >>> version_sanitize("1.0.0 (beta)")
        '1.0.0_beta'
    """
    return re.sub(r"[\s()]+", "_", version).strip("_")


def zipName_make(version: str, module_name: str) -> str:
    """Archive file name, e.g. ``my-design-system-2.4.1.zip``"""
    return f"{module_name}-{version_sanitize(version)}.zip"


def banner_make(display_name: str, version: str, syntax: str = "css") -> str:
    """
    One-line version banner in the comment syntax of the target file.

    Args:
        display_name: Product display name
        version: Product version
        syntax: "css" for ``/*! ... */`` or "sass" for ``// ...``

    Example:
        >>> banner_make("Lightning Design System", "2.4.1")
        '/*! Lightning Design System 2.4.1 */\\n'
    """
    if syntax == "sass":
        return f"// {display_name} {version}\n"
    return f"/*! {display_name} {version} */\n"


def bannerSyntax_get(relative_path: str) -> Optional[str]:
    """
    Banner syntax for an output-relative path, or None when it gets no banner.

    CSS files and the Sass entry index files take the CSS banner (it survives
    into compiled output); other Sass sources take a line comment; vendor
    sources are left alone.
    """
    path = Path(relative_path)
    parts = path.parts
    if path.suffix == ".css":
        return "css"
    if len(parts) >= 2 and parts[0] == "scss":
        if parts[1] == "vendor":
            return None
        if len(parts) == 2 and path.name.startswith("index"):
            return "css"
        if path.suffix == ".scss":
            return "sass"
    return None


def outputRoot_get(state: BuildState) -> OutputRoot:
    if state.outputRoot is None:
        raise ValueError("BuildState has no resolved output root")
    return state.outputRoot


def archive_write(source_root: Path, archive: Path) -> Path:
    """
    Zip every file below source_root into archive (blocking).

    Entries are stored relative to source_root with POSIX separators.
    """
    archive.parent.mkdir(parents=True, exist_ok=True)
    files = sorted(p for p in source_root.rglob("*") if p.is_file() and p != archive)
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in files:
            zf.write(path, arcname=path.relative_to(source_root).as_posix())
    LOG(f"Archived {len(files)} file(s) into {archive}", level=2)
    return archive


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

async def outputRoot_clean(state: BuildState) -> BuildState:
    """Recursively remove the output root; a missing root is fine"""
    root = outputRoot_get(state).path
    if root.exists():
        await asyncio.to_thread(shutil.rmtree, root)
    LOG(f"Cleaned {root}", level=2)
    return state


async def rootFiles_copy(state: BuildState) -> BuildState:
    """Copy package.json, the dist README and release notes"""
    paths = PathResolver(state.settings)
    await asyncio.to_thread(tree_copy, ROOT_FILES, paths.root, outputRoot_get(state).path, paths.root)
    return state


async def metadata_rewrite(state: BuildState) -> BuildState:
    """Rewrite the copied package.json into its published form"""
    target = outputRoot_get(state).resolve("package.json")
    source: Dict[str, Any] = json.loads(await asyncio.to_thread(target.read_text, encoding="utf-8"))
    derived = metadata_derive(source, state.settings.published_name, state.settings.flag_field)
    await asyncio.to_thread(
        target.write_text, json.dumps(derived, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    LOG(f"Published as {derived['name']}", level=2)
    return state


def assetTree_copy(
    name: str,
    patterns: Union[str, Sequence[str]],
    source: SourceFn,
    dest: str,
    base: Optional[SourceFn] = None,
) -> Stage:
    """
    Stage copying globbed files from a source directory into the output.

    Args:
        name: Stage name
        patterns: Glob(s) relative to the source directory
        source: Picks the source directory from the PathResolver
        dest: Destination sub-path below the output root
        base: Picks an explicit base directory for relative paths

    Returns:
        Stage performing the copy
    """
    async def run(state: BuildState) -> BuildState:
        paths = PathResolver(state.settings)
        await asyncio.to_thread(
            tree_copy,
            patterns,
            source(paths),
            outputRoot_get(state).resolve(dest),
            base(paths) if base else None,
        )
        return state

    return Stage(name, run)


async def designTokens_copy(state: BuildState) -> BuildState:
    """
    Copy design tokens.

    Package mode ships the whole token tree; archive mode only token
    definitions and Sass sources, so the zip stays importable as a
    size-limited static resource.
    """
    paths = PathResolver(state.settings)
    root = outputRoot_get(state)
    await asyncio.to_thread(
        tree_copy, root.tokenPatterns_get(), paths.designTokens, root.resolve("design-tokens"), paths.designTokens
    )
    return state


async def componentTokens_copy(state: BuildState) -> BuildState:
    """Copy per-component token files to ui/, keeping their path below the ui root"""
    paths = PathResolver(state.settings)
    await asyncio.to_thread(
        tree_copy, "components/**/tokens/**/*.yml", paths.ui, outputRoot_get(state).resolve("ui"), paths.ui
    )
    return state


async def styleBundle_compile(state: BuildState) -> BuildState:
    """Compile the distributed Sass entries to assets/styles/<module>.css"""
    paths = PathResolver(state.settings)
    root = outputRoot_get(state)
    compiler = StyleCompiler(
        include_paths=[paths.node_modules],
        precision=state.settings.sass_precision,
        prefixer=prefixer_fromSettings(state.settings),
    )
    for entry in state.settings.style_entries:
        output = root.resolve("assets", "styles", outputName_make(entry, state.settings.module_name))
        await compiler.compile_to(root.resolve("scss", entry), output)
    return state


def stylesheets_minify(styles_dir: Path) -> List[Path]:
    """Write a .min.css sibling for every stylesheet in styles_dir (blocking)"""
    written: List[Path] = []
    for css_path in sorted(styles_dir.glob("*.css")):
        if css_path.stem.endswith(".min"):
            continue
        css = css_path.read_text(encoding="utf-8")
        css_path.write_text(css, encoding="utf-8")
        min_path = minName_make(css_path)
        min_path.write_text(css_minify(css), encoding="utf-8")
        written.append(min_path)
    return written


async def styleBundle_minify(state: BuildState) -> BuildState:
    """Keep each compiled stylesheet and add its minified sibling"""
    written = await asyncio.to_thread(stylesheets_minify, outputRoot_get(state).resolve("assets", "styles"))
    LOG(f"Minified {len(written)} stylesheet(s)", level=2)
    return state


def banners_apply(
    root: Path, patterns: Sequence[str], syntax: str, banner: str, exclude: Sequence[str] = ()
) -> List[Path]:
    """Prepend banner to the globbed files whose banner syntax is ``syntax`` (blocking)"""
    files = [
        path for path, _ in files_glob(patterns, root, exclude)
        if bannerSyntax_get(path.relative_to(root).as_posix()) == syntax
    ]
    return text_prepend(files, banner)


async def cssBanner_prepend(state: BuildState) -> BuildState:
    """Prepend the /*! */ banner to every CSS file and the Sass entry index files"""
    banner = banner_make(state.settings.display_name, state.version, "css")
    touched = await asyncio.to_thread(
        banners_apply, outputRoot_get(state).path, ["**/*.css", "scss/index*"], "css", banner
    )
    LOG(f"CSS banner added to {len(touched)} file(s)", level=2)
    return state


async def sassBanner_prepend(state: BuildState) -> BuildState:
    """Prepend the // banner to the remaining Sass sources, vendor excluded"""
    banner = banner_make(state.settings.display_name, state.version, "sass")
    touched = await asyncio.to_thread(
        banners_apply,
        outputRoot_get(state).path,
        ["scss/**/*.scss"],
        "sass",
        banner,
        ["scss/index*.scss", "scss/vendor/*"],
    )
    LOG(f"Sass banner added to {len(touched)} file(s)", level=2)
    return state


async def readme_annotate(state: BuildState) -> BuildState:
    """Write README.md from the dist README with a name and version heading"""
    root = outputRoot_get(state)
    content = await asyncio.to_thread(root.resolve(README_SOURCE).read_text, encoding="utf-8")
    heading = f"# {state.settings.display_name} \n# Version: {state.version} \n"
    await asyncio.to_thread(root.resolve(README_OUTPUT).write_text, heading + content, encoding="utf-8")
    return state


async def readmeSource_remove(state: BuildState) -> BuildState:
    """Remove the now orphaned dist README source"""
    await asyncio.to_thread(outputRoot_get(state).resolve(README_SOURCE).unlink, missing_ok=True)
    return state


async def manifest_generate(state: BuildState) -> BuildState:
    """Describe every component and write the description as ui.json"""
    paths = PathResolver(state.settings)
    manifest = await components_describe(paths.ui)
    target = outputRoot_get(state).resolve(MANIFEST_NAME)
    await asyncio.to_thread(target.write_text, json.dumps(manifest, indent=2), encoding="utf-8")
    LOG(f"Wrote {MANIFEST_NAME} ({len(manifest)} component(s))", level=2)
    newstate = state.copy()
    newstate.manifest = {"components": manifest}
    return newstate


async def archive_create(state: BuildState) -> BuildState:
    """
    Zip the output root into itself and into the public downloads folder.

    The archive is built in the downloads folder first so it never
    includes itself, then copied into the output root.
    """
    paths = PathResolver(state.settings)
    root = outputRoot_get(state)
    name = zipName_make(state.version, state.settings.module_name)
    public_copy = await asyncio.to_thread(archive_write, root.path, paths.downloads / name)
    local_copy = root.resolve(name)
    await asyncio.to_thread(shutil.copyfile, public_copy, local_copy)
    newstate = state.copy()
    newstate.archivePaths = (local_copy, public_copy)
    return newstate


def packagingPipeline_make() -> PipelineSpec:
    """The packaging stages in their fixed order"""
    return PipelineSpec(stages=(
        Stage("clean", outputRoot_clean),
        Stage("root files", rootFiles_copy),
        Stage("package.json", metadata_rewrite),
        # Sass
        assetTree_copy("scss", "**/*.scss", lambda p: p.ui, "scss", lambda p: p.ui),
        assetTree_copy("sass license", "assets/licenses/License-for-Sass.txt", lambda p: p.site, "scss"),
        # Icons
        assetTree_copy("icons", "**", lambda p: p.node_modules / p.settings.icons_package, "assets/icons"),
        # Fonts
        assetTree_copy("fonts", "assets/fonts/**/*", lambda p: p.site, "assets/fonts"),
        assetTree_copy("font license", "assets/licenses/License-for-font.txt", lambda p: p.site, "assets/fonts"),
        # Images
        assetTree_copy(
            "images",
            [
                "assets/images/spinners/*",
                "assets/images/avatar*",
                # Used in the Global Header
                "assets/images/logo-noname.svg",
            ],
            lambda p: p.site,
            "assets/images",
            lambda p: p.site / "assets" / "images",
        ),
        assetTree_copy("images license", "assets/licenses/License-for-images.txt", lambda p: p.site, "assets/images"),
        # Swatches
        assetTree_copy("swatches", "assets/downloads/swatches/**", lambda p: p.site, "swatches"),
        # Design tokens
        Stage("design tokens", designTokens_copy),
        Stage("component tokens", componentTokens_copy),
        # Styles
        Stage("compile styles", styleBundle_compile),
        Stage("minify styles", styleBundle_minify),
        Stage("css banner", cssBanner_prepend),
        Stage("sass banner", sassBanner_prepend),
        # Docs
        Stage("readme", readme_annotate),
        Stage("readme cleanup", readmeSource_remove),
        Stage("manifest", manifest_generate),
        Stage("archive", archive_create),
    ))
