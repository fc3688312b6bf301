"""Reading existing cart files: header, code tabs and asset sections."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Pattern, Tuple

from .models import CartFormat

ASSET_SECTIONS = ("__gfx__", "__gff__", "__label__", "__map__", "__sfx__", "__music__")


class CartParseError(ValueError):
    """Raised when bytes do not look like a cart of the configured format."""


@dataclass
class ParsedCart:
    """An existing cart split at its section markers."""

    header: bytes
    code: bytes
    trailer: bytes
    asset_sections: List[str] = field(default_factory=list)
    has_code_section: bool = False


def delimiter_pattern(cart_format: CartFormat) -> Pattern[str]:
    """Compile a regex matching any rendered tab delimiter line."""
    parts: List[str] = []
    for literal, field_name, _spec, _conversion in string.Formatter().parse(cart_format.tab_delimiter):
        parts.append(re.escape(literal))
        if field_name == "ordinal":
            parts.append(r"\d+")
        elif field_name is not None:
            parts.append(r".+?")
    return re.compile("".join(parts))


def reserved_markers(cart_format: CartFormat) -> Tuple[str, ...]:
    """Lines that would start a new section if they appeared inside a tab."""
    if cart_format.code_section:
        return (cart_format.code_section,) + ASSET_SECTIONS
    return ASSET_SECTIONS


def _marker(line: bytes) -> str:
    return line.rstrip(b"\r\n").rstrip().decode("utf-8", errors="replace")


def parse_cart(data: bytes, cart_format: CartFormat) -> ParsedCart:
    """Split ``data`` into header, code-section body and trailing asset sections."""
    lines = data.splitlines(keepends=True)
    if cart_format.header:
        first = _marker(lines[0]) if lines else ""
        if first != cart_format.header[0]:
            raise CartParseError(
                f"Expected cart to start with {cart_format.header[0]!r}, found {first!r}"
            )

    code_marker = cart_format.code_section
    header: List[bytes] = []
    code: List[bytes] = []
    trailer: List[bytes] = []
    assets: List[str] = []
    target = header
    seen_code = False
    for line in lines:
        marker = _marker(line)
        if marker in ASSET_SECTIONS and target is not trailer:
            target = trailer
        if target is trailer:
            if marker in ASSET_SECTIONS:
                assets.append(marker)
            trailer.append(line)
            continue
        if code_marker and marker == code_marker and not seen_code:
            seen_code = True
            target = code
            continue
        target.append(line)

    return ParsedCart(
        header=b"".join(header),
        code=b"".join(code),
        trailer=b"".join(trailer),
        asset_sections=assets,
        has_code_section=seen_code,
    )


def split_tabs(parsed: ParsedCart, cart_format: CartFormat) -> List[bytes]:
    """Return each code tab's raw bytes, as delimited in the cart."""
    if not parsed.has_code_section and cart_format.code_section:
        return []
    pattern = delimiter_pattern(cart_format)
    tabs: List[bytes] = []
    current: List[bytes] = []
    for line in parsed.code.splitlines(keepends=True):
        if pattern.fullmatch(_marker(line)):
            tabs.append(b"".join(current))
            current = []
            continue
        current.append(line)
    tabs.append(b"".join(current))
    if cart_format.delimit_first_tab and not tabs[0]:
        tabs.pop(0)
    if tabs == [b""]:
        return []
    return tabs


def read_cart(path: Path, cart_format: CartFormat) -> ParsedCart:
    return parse_cart(path.read_bytes(), cart_format)


__all__ = [
    "ASSET_SECTIONS",
    "CartParseError",
    "ParsedCart",
    "delimiter_pattern",
    "parse_cart",
    "read_cart",
    "reserved_markers",
    "split_tabs",
]
