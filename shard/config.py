from __future__ import annotations
import os
from pathlib import Path


# Defaults
_DEFAULT_LINE_WIDTH = 80
_DEFAULT_MAX_LINES = 20
_DEFAULT_INCLUDE_FILE = Path.home() / '.shardrc'

# Console limits below these make list dumps unreadable
MIN_LINE_WIDTH = 20
MIN_MAX_LINES = 3

_TRUTHY = {'1', 'true', 'yes', 'on'}


def int_from_env(var: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(var)
    if not raw:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return max(value, minimum)


def flag_from_env(var: str, default: bool = False) -> bool:
    raw = os.environ.get(var)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def get_line_width() -> int:
    return int_from_env('SHARD_LINE_WIDTH', _DEFAULT_LINE_WIDTH, MIN_LINE_WIDTH)


def get_max_lines() -> int:
    return int_from_env('SHARD_MAX_LINES', _DEFAULT_MAX_LINES, MIN_MAX_LINES)


def get_include_file() -> Path | None:
    # an empty SHARD_INCLUDE disables the startup include
    raw = os.environ.get('SHARD_INCLUDE')
    if raw is None:
        return _DEFAULT_INCLUDE_FILE
    raw = raw.strip()
    return Path(raw).expanduser() if raw else None


def declare_mode_default() -> bool:
    return flag_from_env('SHARD_DECLARE')


def show_code_default() -> bool:
    return flag_from_env('SHARD_SHOW_CODE')
