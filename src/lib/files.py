"""
Glob-driven file copying

Copies files selected by glob patterns into a destination directory while
preserving their path relative to a base directory. Blocking; stages run
these helpers off the event loop.
"""

import errno
import os
import shutil
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .log import LOG


PathLike = Union[str, Path]

_MAGIC = ("*", "?", "[")


def pattern_isMagic(pattern: str) -> bool:
    """Check if a pattern contains glob wildcards"""
    return any(ch in pattern for ch in _MAGIC)


def globBase_get(pattern: str, cwd: Path) -> Path:
    """
    Directory that relative output paths are computed from.

    For a wildcard pattern this is the leading run of literal path parts;
    for a literal file it is the file's parent.

    Example:
        >>> globBase_get("assets/fonts/**/*", Path("/site"))
        PosixPath('/site/assets/fonts')
    """
    if not pattern_isMagic(pattern):
        return (cwd / pattern).parent
    literal: List[str] = []
    for part in Path(pattern).parts:
        if pattern_isMagic(part):
            break
        literal.append(part)
    return cwd.joinpath(*literal)


def files_glob(
    patterns: Union[str, Sequence[str]],
    cwd: PathLike,
    exclude: Iterable[str] = (),
) -> List[Tuple[Path, Path]]:
    """
    Expand patterns into (file, base) pairs, sorted and de-duplicated.

    A trailing ``**`` selects every file below that directory. Exclusions
    are globs matched against the cwd-relative POSIX path.

    Args:
        patterns: One glob or a list of globs, relative to cwd
        cwd: Directory the globs are evaluated in
        exclude: Globs removed from the selection

    Returns:
        List of (absolute file path, base directory) tuples

    Raises:
        FileNotFoundError: A literal (non-wildcard) pattern names a missing file
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    cwd = Path(cwd)
    exclude = list(exclude)
    selected: dict = {}

    for pattern in patterns:
        base = globBase_get(pattern, cwd)
        if not pattern_isMagic(pattern):
            candidate = cwd / pattern
            if not candidate.is_file():
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(candidate))
            matches: Iterable[Path] = [candidate]
        else:
            glob = pattern + "/*" if pattern.endswith("**") else pattern
            matches = cwd.glob(glob)

        for match in matches:
            if not match.is_file():
                continue
            relative = match.relative_to(cwd).as_posix()
            if any(fnmatchcase(relative, ex) for ex in exclude):
                continue
            selected.setdefault(match, base)

    return sorted(selected.items())


def tree_copy(
    patterns: Union[str, Sequence[str]],
    cwd: PathLike,
    dest: PathLike,
    base: Optional[PathLike] = None,
    exclude: Iterable[str] = (),
) -> List[Path]:
    """
    Copy globbed files into dest, preserving paths relative to base.

    Args:
        patterns: Glob(s) relative to cwd
        cwd: Directory the globs are evaluated in
        dest: Destination directory
        base: Explicit base directory; defaults to each pattern's literal prefix
        exclude: Globs removed from the selection

    Returns:
        Written destination paths
    """
    dest = Path(dest)
    written: List[Path] = []
    for source, pattern_base in files_glob(patterns, cwd, exclude):
        relative = source.relative_to(Path(base) if base else pattern_base)
        target = dest / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        written.append(target)
    LOG(f"Copied {len(written)} file(s) into {dest}", level=2)
    return written


def text_prepend(paths: Iterable[Path], text: str) -> List[Path]:
    """
    Prepend text to every file in paths, rewriting them in place.

    Returns:
        Paths that were rewritten
    """
    touched: List[Path] = []
    for path in paths:
        content = path.read_text(encoding="utf-8")
        path.write_text(text + content, encoding="utf-8")
        touched.append(path)
    return touched
