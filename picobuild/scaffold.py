"""Creates a new project in the directory convention the scanner expects."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader

from .config import CONFIG_FILENAME, DEFAULT_LAYOUT, DEFAULT_MANIFEST_NAME, DEFAULT_SRC_DIR
from .layouts import FilePerTabLayout, resolve_layout
from .logging import get_logger
from .models import DEFAULT_MAX_TABS, PICO8_TAB_DELIMITER

_TEMPLATES_DIR = Path(__file__).with_name("templates")
_FIRST_TAB = "main"

logger = get_logger("scaffold")


_LUA_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _lua_string(value: object) -> str:
    """Render ``value`` as a double-quoted Lua string literal."""
    chars = []
    for char in str(value):
        if char in _LUA_ESCAPES:
            chars.append(_LUA_ESCAPES[char])
        elif ord(char) < 32:
            chars.append(f"\\{ord(char):03d}")
        else:
            chars.append(char)
    return '"' + "".join(chars) + '"'


def _lua_comment(value: object) -> str:
    return " ".join(str(value).splitlines())


def _yaml_string(value: object) -> str:
    # JSON strings are valid YAML double-quoted scalars.
    return json.dumps(str(value), ensure_ascii=False)


def _create_env() -> Environment:
    loader = FileSystemLoader(str(_TEMPLATES_DIR))
    env = Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)
    env.filters["lua_string"] = _lua_string
    env.filters["lua_comment"] = _lua_comment
    env.filters["yaml_string"] = _yaml_string
    return env


def _cart_name(project_dir: Path) -> str:
    stem = re.sub(r"[^A-Za-z0-9_-]+", "-", project_dir.name).strip("-") or "cart"
    return f"{stem}.p8"


def create_project(
    project_dir: Path,
    *,
    layout: str = DEFAULT_LAYOUT,
    cart: str | None = None,
    src_dir: str = DEFAULT_SRC_DIR,
) -> List[Path]:
    """Write picobuild.yml plus a first tab; return the created paths.

    Raises FileExistsError when the directory already holds a picobuild.yml
    and ValueError for an unknown layout.
    """
    layout_impl = resolve_layout(layout)
    project_dir = project_dir.expanduser().resolve()
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        raise FileExistsError(f"{config_path} already exists; refusing to overwrite it")

    env = _create_env()
    context = {
        "project_name": project_dir.name or "cart",
        "src_dir": src_dir,
        "cart": cart or _cart_name(project_dir),
        "layout": layout_impl.name,
        "max_tabs": DEFAULT_MAX_TABS,
        "manifest_name": DEFAULT_MANIFEST_NAME,
        "tab_delimiter": PICO8_TAB_DELIMITER,
        "tabs": [_FIRST_TAB],
    }

    source_root = project_dir / src_dir
    if isinstance(layout_impl, FilePerTabLayout):
        main_path = source_root / f"{_FIRST_TAB}.lua"
        context["tabs"] = [main_path.name]
    else:
        main_path = source_root / _FIRST_TAB / f"{_FIRST_TAB}.lua"

    created: List[Path] = []
    planned = (
        (config_path, "picobuild.yml.j2"),
        (main_path, "main.lua.j2"),
        (source_root / DEFAULT_MANIFEST_NAME, "order.j2"),
    )
    for target, template_name in planned:
        if target.exists():
            logger.debug("Keeping existing %s", target)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(env.get_template(template_name).render(**context), encoding="utf-8")
        created.append(target)
    logger.info("Created %s project in %s", layout_impl.name, project_dir)
    return created


__all__ = ["create_project"]
