"""
Shared fixtures: a miniature design system project on disk
"""

import json
from pathlib import Path
from typing import Dict

import pytest

from dskit.config import AppSettings


PACKAGE_JSON: Dict = {
    "name": "design-system-internal",
    "description": "Design system sources",
    "version": "2.4.1",
    "license": "BSD-3-Clause",
    "scripts": {"build": "dskit-dist"},
    "dependencies": {"left-pad": "1.0.0"},
    "devDependencies": {"pytest": "7"},
    "optionalDependencies": {"fsevents": "1"},
    "engines": {"node": ">=6"},
    "important": True,
}

BUTTON_SCSS = """/**
 * Buttons trigger an action.
 * @summary Clickable control
 * @selector .slds-button
 * @restrict button
 */
.slds-button {
  display: inline-flex;
  width: percentage(1 / 3);
}
"""

BUTTON_EXAMPLE = """variants = {
    "default": lambda: '<button class="slds-button">Default</button>',
    "brand": lambda: '<button class="slds-button slds-button_brand">Brand</button>',
}
"""

BUTTON_TOKENS = """props:
  BUTTON_BORDER_RADIUS:
    value: ".25rem"
  BUTTON_LINE_HEIGHT:
    value: "1.875rem"
"""


def files_write(root: Path, files: Dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root holding every source the packaging pipeline reads"""
    root = tmp_path / "design-system"
    files_write(root, {
        "package.json": json.dumps(PACKAGE_JSON, indent=2),
        "README-dist.md": "Design system distribution.\n",
        "RELEASENOTES.md": "## 2.4.1\n- Fixes\n",
        # Sass sources
        "ui/index.scss": '@import "vendor/normalize";\n@import "components/button/index";\n',
        "ui/vendor/_normalize.scss": "html { line-height: 1.15; }\n",
        "ui/components/button/index.scss": BUTTON_SCSS,
        "ui/components/button/example.py": BUTTON_EXAMPLE,
        "ui/components/button/tokens/button.yml": BUTTON_TOKENS,
        "ui/components/badge/index.scss": "/** Badges label things. */\n.slds-badge { padding: 0 .5rem; }\n",
        # Site assets
        "site/assets/licenses/License-for-Sass.txt": "Sass license\n",
        "site/assets/licenses/License-for-font.txt": "Font license\n",
        "site/assets/licenses/License-for-images.txt": "Images license\n",
        "site/assets/fonts/webfonts/Sans-Regular.woff": "woff\n",
        "site/assets/images/spinners/brand.gif": "gif\n",
        "site/assets/images/avatar1.jpg": "jpg\n",
        "site/assets/images/logo-noname.svg": "<svg/>\n",
        "site/assets/images/hero.png": "png\n",
        "site/assets/downloads/swatches/colors.aco": "aco\n",
        # Icons
        "node_modules/@salesforce-ux/icons/dist/salesforce-lightning-design-system-icons/utility/add.svg": "<svg/>\n",
        # Design tokens
        "design-tokens/a.yml": "props: {}\n",
        "design-tokens/b.scss": "$b: 1px;\n",
        "design-tokens/c.png": "png\n",
    })
    return root


@pytest.fixture
def settings(project: Path) -> AppSettings:
    """Settings rooted at the fixture project, prefixing disabled"""
    return AppSettings(project_root=project, autoprefix=False, verbosity=0)
