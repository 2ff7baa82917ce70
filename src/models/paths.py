"""
Output root models

An output root is an absolute directory plus the mode that decides which
sub-trees are packaged into it.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List


class OutputMode(Enum):
    """
    Shape of the packaged output

    The archive is uploaded where a hard size ceiling applies (5MB static
    resources), so archive mode ships only token sources.
    """
    PACKAGE = "package-mode"    # --npm: full design-token tree
    ARCHIVE = "archive-mode"    # zip download: filtered design tokens


# Token files shipped in archive mode: token definitions and Sass sources
ARCHIVE_TOKEN_PATTERNS: List[str] = ["**/*.yml", "**/*.scss"]
PACKAGE_TOKEN_PATTERNS: List[str] = ["**/*.*"]


@dataclass(frozen=True)
class OutputRoot:
    """
    Resolved output directory for one pipeline run

    Attributes:
        path: Absolute output directory
        mode: Package or archive mode
    """
    path: Path
    mode: OutputMode

    def resolve(self, *parts: str) -> Path:
        """Resolve path parts below the output root"""
        return self.path.joinpath(*parts)

    def tokenPatterns_get(self) -> List[str]:
        """Design-token globs included in this mode"""
        if self.mode is OutputMode.PACKAGE:
            return list(PACKAGE_TOKEN_PATTERNS)
        return list(ARCHIVE_TOKEN_PATTERNS)
