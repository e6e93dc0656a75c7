#!/usr/bin/env python3
# bootloader/config/config.py
from __future__ import annotations

"""
Configuration loader (stdlib-only).

Precedence (low → high):
  1) Built-in defaults
  2) Files in CWD: .env, config.ini, config.json, config.toml
  3) Environment variables

Validation:
  - ROOTFS_BASE_URL / ROOTFS_RESOURCE: non-empty str
  - ROOTFS_SHA256: None or 64 hex chars
  - MOUNT_LABEL: single drive letter A-D
  - MOUNT_PATH / LOG_FILE_PATH: None or normalized path
  - FRAME_DELAY: float > 0; EXTRACT_DELAY / RELEASE_DELAY: float >= 0
  - TIMEOUT: int >= 1
  - STRICT_EXTRACT / HEADLESS: bool
  - LOG_LEVEL: None or one of {'DEBUG','INFO','WARNING','ERROR','CRITICAL'}
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional
import configparser
import json
import os
import re
import tomllib

from bootloader.fs import FsLabel

# ---------- defaults ----------

DEFAULTS: dict[str, Any] = {
    "ROOTFS_BASE_URL": "http://127.0.0.1:8000/",
    "ROOTFS_RESOURCE": "rootfs.zip",
    "ROOTFS_SHA256": None,
    "MOUNT_LABEL": "C",
    "MOUNT_PATH": None,             # unset = RAM drive
    "FRAME_DELAY": 0.1,
    "EXTRACT_DELAY": 0.2,
    "STRICT_EXTRACT": False,
    "TIMEOUT": 30,
    "RELEASE_DELAY": 0.5,
    "HEADLESS": False,
    "LOG_LEVEL": None,
    "LOG_FILE_PATH": None,
}


# ---------- data model ----------

@dataclass(frozen=True)
class BootConfig:
    rootfs_base_url: str
    rootfs_resource: str
    rootfs_sha256: str | None
    mount_label: FsLabel
    mount_path: Path | None

    frame_delay: float
    extract_delay: float
    strict_extract: bool
    timeout: int
    release_delay: float
    headless: bool

    log_level: str | None
    log_file_path: Path | None

    # Unrecognized keys preserved for debugging/forward-compat
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def mount_root(self) -> str:
        return self.mount_label.root


# ---------- file loaders ----------

def _load_env_file(path: Path) -> dict[str, str]:
    """Very small .env parser: KEY=VALUE, supports quotes; ignores comments/blank lines."""
    out: dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return out

    line_re = re.compile(r"""^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$""")
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        m = line_re.match(line)
        if not m:
            continue
        k, v = m.group(1), m.group(2)
        if (v.startswith("'") and v.endswith("'")) or (v.startswith('"') and v.endswith('"')):
            v = v[1:-1]
        out[k] = v
    return out


def _load_ini_file(path: Path) -> dict[str, str]:
    cfg = configparser.ConfigParser()
    if not cfg.read(path, encoding="utf-8"):
        return {}
    flat: dict[str, str] = {}
    for sec in cfg.sections():
        for k, v in cfg.items(sec):
            flat[k.upper()] = v
    return flat


def _load_json_file(path: Path) -> dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _load_toml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return {}


def _flatten_mapping(obj: Any, prefix: str = "") -> dict[str, Any]:
    """
    Flatten nested dicts to UPPER_SNAKE keys.
    Example: {'rootfs': {'resource': 'x.zip'}} -> {'ROOTFS_RESOURCE': 'x.zip'}
    """
    flat: dict[str, Any] = {}
    if isinstance(obj, Mapping):
        for k, v in obj.items():
            key = f"{prefix}_{k}" if prefix else str(k)
            if isinstance(v, Mapping):
                flat.update(_flatten_mapping(v, key))
            else:
                flat[str(key).upper()] = v
    return flat


def _find_config_files(base: Path) -> list[Path]:
    return [
        base / ".env",
        base / "config.ini",
        base / "config.json",
        base / "config.toml",
    ]


# ---------- normalization & coercion ----------

_BOOL_TRUE = {"1", "true", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "no", "n", "off"}


def _as_bool(key: str, val: Any) -> bool:
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in _BOOL_TRUE:
        return True
    if s in _BOOL_FALSE:
        return False
    raise ValueError(f"{key}: expected boolean, got {val!r}")


def _as_int(key: str, val: Any) -> int:
    if isinstance(val, int) and not isinstance(val, bool):
        return val
    try:
        return int(str(val).strip())
    except ValueError as exc:
        raise ValueError(f"{key}: expected integer, got {val!r}") from exc


def _as_float(key: str, val: Any) -> float:
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        return float(val)
    try:
        return float(str(val).strip())
    except ValueError as exc:
        raise ValueError(f"{key}: expected number, got {val!r}") from exc


def _as_opt_str(val: Any) -> str | None:
    return None if val is None or str(val).strip().lower() in {"", "none"} else str(val).strip()


def _as_str(key: str, val: Any) -> str:
    s = _as_opt_str(val)
    if s is None:
        raise ValueError(f"{key} must not be empty")
    return s


def _as_log_level(val: Any) -> str | None:
    lv = _as_opt_str(val)
    if lv is None:
        return None
    up = lv.upper()
    allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if up not in allowed:
        raise ValueError(
            f"LOG_LEVEL must be one of {sorted(allowed)}, got {lv!r}")
    return up


def _as_opt_path(val: Any) -> Path | None:
    v = _as_opt_str(val)
    if v is None:
        return None
    return Path(os.path.expandvars(os.path.expanduser(v))).resolve()


def _as_label(val: Any) -> FsLabel:
    s = _as_str("MOUNT_LABEL", val).rstrip(":/").upper()
    try:
        return FsLabel(s)
    except ValueError as exc:
        allowed = [lbl.value for lbl in FsLabel]
        raise ValueError(f"MOUNT_LABEL must be one of {allowed}, got {val!r}") from exc


def _as_sha256(val: Any) -> str | None:
    s = _as_opt_str(val)
    if s is None:
        return None
    if not re.fullmatch(r"[0-9A-Fa-f]{64}", s):
        raise ValueError("ROOTFS_SHA256 must be 64 hex characters")
    return s.lower()


# ---------- merge & load ----------

def _normalize_keys(d: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).upper(): v for k, v in d.items()}


def _merge_sources(
    base: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    merged: dict[str, Any] = dict(DEFAULTS)

    for file in _find_config_files(base or Path.cwd()):
        if file.suffix == ".env" or file.name == ".env":
            merged.update(_normalize_keys(_load_env_file(file)))
        elif file.suffix == ".ini":
            merged.update(_normalize_keys(_load_ini_file(file)))
        elif file.suffix == ".json":
            merged.update(_normalize_keys(
                _flatten_mapping(_load_json_file(file))))
        elif file.suffix == ".toml":
            merged.update(_normalize_keys(
                _flatten_mapping(_load_toml_file(file))))

    # Environment overrides everything, but only for keys we know about.
    env = os.environ if environ is None else environ
    merged.update({k: v for k, v in env.items() if k in DEFAULTS})
    return merged


def _validate_and_build(config: Mapping[str, Any]) -> BootConfig:
    def get(key: str) -> Any:
        return config.get(key, DEFAULTS[key])

    frame_delay = _as_float("FRAME_DELAY", get("FRAME_DELAY"))
    extract_delay = _as_float("EXTRACT_DELAY", get("EXTRACT_DELAY"))
    release_delay = _as_float("RELEASE_DELAY", get("RELEASE_DELAY"))
    timeout = _as_int("TIMEOUT", get("TIMEOUT"))

    if frame_delay <= 0:
        raise ValueError("FRAME_DELAY must be > 0")
    if extract_delay < 0:
        raise ValueError("EXTRACT_DELAY must be >= 0")
    if release_delay < 0:
        raise ValueError("RELEASE_DELAY must be >= 0")
    if timeout < 1:
        raise ValueError("TIMEOUT must be >= 1")

    extra = {k: v for k, v in config.items() if k not in DEFAULTS}

    return BootConfig(
        rootfs_base_url=_as_str("ROOTFS_BASE_URL", get("ROOTFS_BASE_URL")),
        rootfs_resource=_as_str("ROOTFS_RESOURCE", get("ROOTFS_RESOURCE")),
        rootfs_sha256=_as_sha256(get("ROOTFS_SHA256")),
        mount_label=_as_label(get("MOUNT_LABEL")),
        mount_path=_as_opt_path(get("MOUNT_PATH")),
        frame_delay=frame_delay,
        extract_delay=extract_delay,
        strict_extract=_as_bool("STRICT_EXTRACT", get("STRICT_EXTRACT")),
        timeout=timeout,
        release_delay=release_delay,
        headless=_as_bool("HEADLESS", get("HEADLESS")),
        log_level=_as_log_level(get("LOG_LEVEL")),
        log_file_path=_as_opt_path(get("LOG_FILE_PATH")),
        extra=extra,
    )


# ---------- public API ----------

def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    base: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BootConfig:
    """
    Load, merge, normalize, and validate configuration.
    `overrides` (e.g. from the command line) win over every other source.
    """
    raw = _merge_sources(base, environ)
    if overrides:
        raw.update({k: v for k, v in _normalize_keys(overrides).items() if v is not None})
    return _validate_and_build(raw)
