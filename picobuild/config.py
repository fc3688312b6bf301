"""Configuration loading for picobuild (picobuild.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .models import (
    DEFAULT_ENCODING,
    CartFormat,
    ConstraintProfile,
    PICO8_CODE_SECTION,
    PICO8_HEADER,
    PICO8_TAB_DELIMITER,
)

CONFIG_FILENAME = "picobuild.yml"
DEFAULT_LAYOUT = "folder-per-tab"
DEFAULT_SRC_DIR = "src"
DEFAULT_CART = "cart.p8"
DEFAULT_MANIFEST_NAME = ".order"

ENV_ROOT = "PICOBUILD_ROOT"
ENV_MAX_TABS = "PICOBUILD_MAX_TABS"
ENV_MAX_TAB_BYTES = "PICOBUILD_MAX_TAB_BYTES"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ScanConfig:
    """How fragments are discovered inside the project root."""

    recursive: bool = True
    manifest_name: str = DEFAULT_MANIFEST_NAME
    include_extensions: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class PicoBuildConfig:
    """Represents the settings defined in picobuild.yml."""

    root: Path
    src_dir: Path
    cart: Path
    layout: str = DEFAULT_LAYOUT
    encoding: str = DEFAULT_ENCODING
    workers: int = 1
    constraints: ConstraintProfile = field(default_factory=ConstraintProfile)
    scan: ScanConfig = field(default_factory=ScanConfig)
    format: CartFormat = field(default_factory=CartFormat)
    config_file: Optional[Path] = None


def default_config(root: Path) -> PicoBuildConfig:
    root = root.expanduser().resolve()
    return PicoBuildConfig(root=root, src_dir=root / DEFAULT_SRC_DIR, cart=root / DEFAULT_CART)


def load_config(config_path: Path) -> PicoBuildConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return default_config(root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    src_dir = _as_str(data.get("src_dir")) or DEFAULT_SRC_DIR
    cart = _as_str(data.get("cart")) or DEFAULT_CART
    layout = _as_str(data.get("layout")) or DEFAULT_LAYOUT
    encoding = _as_str(data.get("encoding")) or DEFAULT_ENCODING
    _check_encoding(encoding)

    workers = _as_int(data.get("workers"))
    if data.get("workers") is not None and (workers is None or workers < 1):
        raise ConfigError(f"workers must be a positive integer, got {data.get('workers')!r}")

    constraints_data = _as_dict(data.get("constraints"))
    constraints = _build_constraints(constraints_data)

    scan_data = _as_dict(data.get("scan"))
    scan = ScanConfig()
    if scan_data:
        recursive = _as_bool(scan_data.get("recursive"))
        if recursive is not None:
            scan.recursive = recursive
        scan.manifest_name = _as_str(scan_data.get("manifest_name")) or DEFAULT_MANIFEST_NAME
        scan.include_extensions = [
            _normalise_extension(item) for item in _as_str_list(scan_data.get("include_extensions"))
        ]
        scan.exclude_paths = _as_str_list(scan_data.get("exclude_paths"))

    cart_format = _build_format(_as_dict(data.get("format")))

    return PicoBuildConfig(
        root=root,
        src_dir=(root / src_dir).resolve(),
        cart=(root / cart).resolve(),
        layout=layout,
        encoding=encoding,
        workers=workers or 1,
        constraints=constraints,
        scan=scan,
        format=cart_format,
        config_file=config_file,
    )


def apply_env_overrides(
    config: PicoBuildConfig, environ: Mapping[str, str] | None = None
) -> PicoBuildConfig:
    """Return a copy of ``config`` with PICOBUILD_* environment overrides applied."""
    env = os.environ if environ is None else environ
    max_tabs = _env_int(env, ENV_MAX_TABS)
    max_tab_bytes = _env_int(env, ENV_MAX_TAB_BYTES)
    if max_tabs is None and max_tab_bytes is None:
        return config
    return override_constraints(config, max_tabs=max_tabs, max_tab_bytes=max_tab_bytes)


def override_constraints(
    config: PicoBuildConfig,
    *,
    max_tabs: Optional[int] = None,
    max_tab_bytes: Optional[int] = None,
) -> PicoBuildConfig:
    profile = config.constraints
    try:
        profile = ConstraintProfile(
            max_tabs=max_tabs if max_tabs is not None else profile.max_tabs,
            max_tab_bytes=max_tab_bytes if max_tab_bytes is not None else profile.max_tab_bytes,
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    return replace(config, constraints=profile)


def resolve_project_dir(path: str | None, environ: Mapping[str, str] | None = None) -> Path:
    """Pick the project directory from an explicit path, PICOBUILD_ROOT, or the cwd."""
    env = os.environ if environ is None else environ
    if path:
        return Path(path).expanduser().resolve()
    from_env = env.get(ENV_ROOT)
    if from_env:
        return Path(from_env).expanduser().resolve()
    return Path.cwd().resolve()


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.suffix not in {".yml", ".yaml"}:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _build_constraints(data: Dict[str, Any]) -> ConstraintProfile:
    if not data:
        return ConstraintProfile()
    max_tabs = _as_int(data.get("max_tabs"))
    if data.get("max_tabs") is not None and max_tabs is None:
        raise ConfigError(f"constraints.max_tabs must be an integer, got {data.get('max_tabs')!r}")
    max_tab_bytes = _as_int(data.get("max_tab_bytes"))
    if data.get("max_tab_bytes") is not None and max_tab_bytes is None:
        raise ConfigError(
            f"constraints.max_tab_bytes must be an integer, got {data.get('max_tab_bytes')!r}"
        )
    try:
        return ConstraintProfile(
            max_tabs=max_tabs if max_tabs is not None else ConstraintProfile().max_tabs,
            max_tab_bytes=max_tab_bytes,
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _build_format(data: Dict[str, Any]) -> CartFormat:
    if not data:
        return CartFormat()
    header_value = data.get("header")
    header = tuple(_as_str_list(header_value)) if header_value is not None else PICO8_HEADER
    code_section = data.get("code_section", PICO8_CODE_SECTION)
    tab_delimiter = _as_str(data.get("tab_delimiter")) or PICO8_TAB_DELIMITER
    try:
        tab_delimiter.format(ordinal=0, name="main")
    except (KeyError, IndexError, ValueError) as exc:
        raise ConfigError(f"format.tab_delimiter is not a valid template: {exc}") from exc
    delimit_first = _as_bool(data.get("delimit_first_tab"))
    preserve_assets = _as_bool(data.get("preserve_assets"))
    return CartFormat(
        header=header,
        code_section=_as_str(code_section) or "",
        tab_delimiter=tab_delimiter,
        delimit_first_tab=bool(delimit_first),
        preserve_assets=True if preserve_assets is None else preserve_assets,
    )


def _check_encoding(encoding: str) -> None:
    try:
        "".encode(encoding)
    except LookupError as exc:
        raise ConfigError(f"Unknown encoding: {encoding}") from exc


def _normalise_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


def _env_int(env: Mapping[str, str], key: str) -> Optional[int]:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    value = _as_int(raw.strip())
    if value is None:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "PicoBuildConfig",
    "ScanConfig",
    "apply_env_overrides",
    "default_config",
    "load_config",
    "override_constraints",
    "resolve_project_dir",
]
