"""Color & style helpers.

Decisions:
- Truecolor preferred; falls back to 256-color cube if unsupported.
- Disables automatically when not a TTY unless FORCE_COLOR=1.
- Honors NO_COLOR for complete disable.
- Palette overrides via environment (TASKS_COLOR_*) or a .env file.
"""
from __future__ import annotations
import os, sys

from dotenv import dotenv_values

_FORCE = os.environ.get("FORCE_COLOR", "").lower() in {"1", "true", "yes", "on"}
_NO_COLOR = os.environ.get("NO_COLOR") is not None
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_COLORTERM = os.environ.get("COLORTERM", "").lower()
_USE_TRUECOLOR = _ENABLE and any(tok in _COLORTERM for tok in ("truecolor", "24bit"))

def _code(part: str) -> str:
    """Generate ANSI escape code for a given style part."""
    return f"\033[{part}m" if _ENABLE else ''

def _hex_to_rgb(hex_code: str) -> tuple[int,int,int]:
    """Convert a hex color code to an RGB tuple."""
    h = hex_code.lstrip('#')
    return int(h[0:2],16), int(h[2:4],16), int(h[4:6],16)

def _fg_truecolor(r: int, g: int, b: int) -> str:
    """Generate ANSI escape code for truecolor foreground."""
    return f"\033[38;2;{r};{g};{b}m"

def _fg_256(r: int, g: int, b: int) -> str:
    """Approximate RGB to xterm 256-color cube."""
    def to_6(x: int) -> int:
        return int(round(x / 255 * 5))
    r6, g6, b6 = to_6(r), to_6(g), to_6(b)
    idx = 16 + 36 * r6 + 6 * g6 + b6
    return f"\033[38;5;{idx}m"

def _from_hex(hex_code: str) -> str:
    """Convert a hex color code to an ANSI escape sequence."""
    if not _ENABLE:
        return ''
    r, g, b = _hex_to_rgb(hex_code)
    if _USE_TRUECOLOR:
        return _fg_truecolor(r, g, b)
    return _fg_256(r, g, b)

def _valid_hex(value: str | None) -> str | None:
    """Normalize a user-supplied hex color; None if it is not #RRGGBB."""
    if not value:
        return None
    h = value.strip().lstrip('#')
    if len(h) == 6 and all(c in '0123456789abcdefABCDEF' for c in h):
        return '#' + h
    return None

RESET = _code('0')
BOLD = _code('1')
DIM = _code('2')
UNDERLINE = _code('4')

PALETTE_DEFAULTS = {
    'TASKS_COLOR_PRIMARY': '#476EAE',
    'TASKS_COLOR_HIGH': '#E06C75',
    'TASKS_COLOR_MEDIUM': '#F6FF99',
    'TASKS_COLOR_LOW': '#A7E399',
    'TASKS_COLOR_DONE': '#A7E399',
    'TASKS_COLOR_ACCENT': '#48B3AF',
}

# Resolve final hex values (priority: real env var > .env entry > default)
_DOTENV = dotenv_values()
_HEX = {
    key: _valid_hex(os.environ.get(key)) or _valid_hex(_DOTENV.get(key)) or default
    for key, default in PALETTE_DEFAULTS.items()
}

PRIMARY = _from_hex(_HEX['TASKS_COLOR_PRIMARY'])
ACCENT = _from_hex(_HEX['TASKS_COLOR_ACCENT'])
C_HIGH = _from_hex(_HEX['TASKS_COLOR_HIGH'])
C_MEDIUM = _from_hex(_HEX['TASKS_COLOR_MEDIUM'])
C_LOW = _from_hex(_HEX['TASKS_COLOR_LOW'])
C_DONE = _from_hex(_HEX['TASKS_COLOR_DONE'])

PRIORITY_COLOR = {
    'high': C_HIGH,
    'medium': C_MEDIUM,
    'low': C_LOW,
}

HEADER_COLOR = PRIMARY
ID_COLOR = PRIMARY + BOLD
TAG_COLOR = ACCENT
ERROR_COLOR = C_HIGH
WARN_COLOR = C_MEDIUM
OK_COLOR = C_DONE

def color(text: str, *styles: str) -> str:
    """Apply ANSI styles to a given text."""
    if not _ENABLE:
        return text
    return ''.join(styles) + text + RESET

__all__ = [
    'color','RESET','BOLD','DIM','UNDERLINE','PRIORITY_COLOR','HEADER_COLOR','ID_COLOR','TAG_COLOR',
    'ERROR_COLOR','WARN_COLOR','OK_COLOR','C_DONE','ACCENT','_ENABLE','_USE_TRUECOLOR','_FORCE'
]
