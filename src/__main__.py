#!/usr/bin/env python3
"""
dskit - design system packaging

Packages the design system sources into a distributable tree and a zip
archive. The fixed pipeline cleans the output root, copies package
metadata, Sass sources, icons, fonts, images, swatches and design tokens,
compiles and minifies the stylesheet bundle, stamps version banners,
writes README.md and ui.json, and zips the result.

Output modes:
    archive mode (default)  -> .dist/   filtered design tokens (upload size limit)
    package mode (--npm)    -> .npm/    full design-token tree

Usage:
    dskit-dist
    dskit-dist --npm

Any stage failure aborts the run: the error is raised to the top level
and the process exits with a non-zero status. Partial output is left in
place; the next run starts from a clean output root.

The preview server lives in ``dskit.lib.previewer`` (``dskit-preview``).
"""

import asyncio
from argparse import ArgumentParser, Namespace
from typing import List, Optional

from .config import appsettings
from .lib import LOG, __version__, packagingPipeline_make, state_connectToLogger
from .models import BuildState


# Define CLI arguments
parser = ArgumentParser(
    description=f"dskit {__version__} - package the design system for distribution",
)

parser.add_argument(
    "--npm",
    action="store_true",
    default=False,
    help="Build the npm package tree (full design tokens) instead of the zip distribution",
)


async def build(options: Namespace) -> BuildState:
    """
    Run the packaging pipeline once.

    Args:
        options: Parsed CLI arguments
            - npm: bool - package mode instead of archive mode

    Returns:
        BuildState after the final stage

    Raises:
        Exception: The first stage failure, unchanged
    """
    state: BuildState = BuildState.state_createFromNamespace(options, appsettings)

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)
    LOG(f"{state.settings.display_name} {state.version} -> {state.outputRoot.path}", level=1)

    final_state = await packagingPipeline_make().run(state)

    for archive in final_state.archivePaths:
        LOG(f"  Archive: {archive}", level=1)
    return final_state


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point - errors propagate and terminate the process."""
    options = parser.parse_args(argv)
    asyncio.run(build(options))


if __name__ == "__main__":
    main()
