"""
Component documentation and description

Reads the documentation comments embedded in the style sources and builds
the structured component description shipped as ui.json. The preview
server uses the same comment scan for its comments provider.

Documentation comments are Sass/CSS block comments opened with ``/**``:

    /**
     * Buttons trigger an action.
     * @summary Clickable control
     * @selector .slds-button
     */

Lines starting with ``@tag`` become annotations; the rest is description.
"""

import ast
import asyncio
import re
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from .log import LOG


DOC_COMMENT = re.compile(r"/\*\*(?!/)(.*?)\*/", re.DOTALL)
ANNOTATION = re.compile(r"^@([\w-]+)\s*(.*)$")

MARKUP_MODULE = "example.py"


class ManifestError(Exception):
    """Raised when component data cannot be described"""
    pass


def docComments_find(source: str) -> List[str]:
    """
    Extract documentation block comments from a stylesheet.

    Returns:
        Full comment texts (including delimiters) in source order
    """
    return [match.group(0) for match in DOC_COMMENT.finditer(source)]


def docComment_parse(comment: str) -> Dict[str, Any]:
    """
    Split one documentation comment into description and annotations.

    Repeated tags collect their values into a list.

    Example:
        >>> docComment_parse("/**\\n * Hi\\n * @selector .a\\n */")
        {'description': 'Hi', 'annotations': {'selector': '.a'}}
    """
    body = DOC_COMMENT.match(comment)
    text = body.group(1) if body else comment
    description: List[str] = []
    annotations: Dict[str, Any] = {}

    for raw in text.splitlines():
        line = raw.strip().lstrip("*").strip()
        if not line:
            continue
        tag = ANNOTATION.match(line)
        if not tag:
            description.append(line)
            continue
        name, value = tag.group(1), tag.group(2).strip()
        if name in annotations:
            existing = annotations[name]
            annotations[name] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            annotations[name] = value

    return {"description": " ".join(description), "annotations": annotations}


def styleSources_list(ui_root: Path) -> List[Path]:
    """All Sass sources below ui_root in sorted path order"""
    return sorted(p for p in Path(ui_root).rglob("*.scss") if p.is_file())


def comments_collect(ui_root: Path) -> str:
    """
    Concatenate every documentation comment found in the style sources.

    Returns:
        Comments separated by newlines; empty string if there are none
    """
    comments: List[str] = []
    for path in styleSources_list(ui_root):
        comments.extend(docComments_find(path.read_text(encoding="utf-8")))
    LOG(f"Collected {len(comments)} documentation comment(s)", level=3)
    return "\n".join(comments)


def tokenNames_read(token_file: Path) -> List[str]:
    """
    Token names declared in a token definition file (its ``props`` keys).

    Raises:
        ManifestError: The file is not valid YAML
    """
    try:
        with open(token_file, "r", encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(f"Failed to parse {token_file}: {e}")
    props = data.get("props") if isinstance(data, dict) else None
    return list(props.keys()) if isinstance(props, dict) else []


def variantIds_read(module_path: Path) -> List[str]:
    """
    Variant ids declared by a markup module, read without executing it.

    Looks for a top-level ``variants = {...}`` dict literal and returns its
    string keys. Modules that fail to parse contribute no variants.
    """
    try:
        tree = ast.parse(module_path.read_text(encoding="utf-8"), filename=str(module_path))
    except SyntaxError as e:
        LOG(f"Skipping variants of {module_path}: {e}", level=2)
        return []

    for node in tree.body:
        targets: List[ast.expr] = []
        if isinstance(node, ast.Assign):
            targets, value = node.targets, node.value
        elif isinstance(node, ast.AnnAssign) and node.value is not None:
            targets, value = [node.target], node.value
        if not any(isinstance(t, ast.Name) and t.id == "variants" for t in targets):
            continue
        if isinstance(value, ast.Dict):
            return [
                key.value for key in value.keys
                if isinstance(key, ast.Constant) and isinstance(key.value, str)
            ]
    return []


def component_describe(component_dir: Path, ui_root: Path) -> Dict[str, Any]:
    """Describe one component directory"""
    description: List[str] = []
    annotations: Dict[str, Any] = {}
    for path in styleSources_list(component_dir):
        for comment in docComments_find(path.read_text(encoding="utf-8")):
            parsed = docComment_parse(comment)
            if parsed["description"]:
                description.append(parsed["description"])
            for key, value in parsed["annotations"].items():
                annotations.setdefault(key, value)

    tokens: List[str] = []
    for token_file in sorted(component_dir.glob("tokens/**/*.yml")):
        tokens.extend(tokenNames_read(token_file))

    module_path = component_dir / MARKUP_MODULE
    variants = variantIds_read(module_path) if module_path.is_file() else []

    return {
        "id": component_dir.name,
        "path": component_dir.relative_to(ui_root).as_posix(),
        "description": " ".join(description),
        "annotations": annotations,
        "tokens": tokens,
        "variants": variants,
    }


def components_describeSync(ui_root: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Describe every component under ``<ui_root>/components``.

    Returns:
        One entry per component directory, sorted by id; empty if the
        components tree is missing or empty
    """
    ui_root = Path(ui_root)
    components_root = ui_root / "components"
    if not components_root.is_dir():
        return []
    components = [
        component_describe(child, ui_root)
        for child in sorted(components_root.iterdir())
        if child.is_dir()
    ]
    LOG(f"Described {len(components)} component(s)", level=2)
    return components


async def components_describe(ui_root: Union[str, Path]) -> List[Dict[str, Any]]:
    """Asynchronous component description (runs in a worker thread)"""
    return await asyncio.to_thread(components_describeSync, ui_root)


async def comments_get(ui_root: Union[str, Path]) -> str:
    """Asynchronous comment scan (runs in a worker thread)"""
    return await asyncio.to_thread(comments_collect, Path(ui_root))
