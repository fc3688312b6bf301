"""Tests for picobuild.serializer and the cart reader."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from picobuild.cart import CartParseError, parse_cart, split_tabs
from picobuild.errors import IoError
from picobuild.models import CartFormat, TabUnit
from picobuild.serializer import CartSerializer

HEADER = b"pico-8 cartridge // http://www.pico-8.com\nversion 41\n"


def _tabs(*items: tuple[str, str]) -> list[TabUnit]:
    return [
        TabUnit(name=name, ordinal=index, source_path=Path(name), assembled_text=text)
        for index, (name, text) in enumerate(items)
    ]


def test_default_format_delimits_tabs_after_the_first() -> None:
    artifact = CartSerializer().render(_tabs(("intro", "a()\n"), ("menu", "b()\n")))

    assert artifact.to_bytes() == HEADER + b"__lua__\na()\n-->8\nb()\n"
    assert [name for name, _ in artifact.tabs] == ["intro", "menu"]


def test_delimiter_starts_on_its_own_line() -> None:
    artifact = CartSerializer().render(_tabs(("one", "x = 1"), ("two", "y = 2")))

    assert artifact.to_bytes() == HEADER + b"__lua__\nx = 1\n-->8\ny = 2"


def test_templated_delimiter_includes_ordinal_and_name() -> None:
    cart_format = CartFormat(header=(), code_section="", tab_delimiter="-- tab {ordinal}: {name}", delimit_first_tab=True)

    data = CartSerializer(cart_format).render(_tabs(("a", "1\n"), ("b", "2\n"))).to_bytes()

    assert data == b"-- tab 0: a\n1\n-- tab 1: b\n2\n"


def test_render_rejects_gaps_and_unassembled_tabs() -> None:
    gap = [TabUnit(name="a", ordinal=1, source_path=Path("a"), assembled_text="")]
    with pytest.raises(ValueError):
        CartSerializer().render(gap)

    raw = [TabUnit(name="a", ordinal=0, source_path=Path("a"))]
    with pytest.raises(ValueError):
        CartSerializer().render(raw)


def test_existing_assets_are_preserved() -> None:
    existing = HEADER + b"__lua__\nold()\n__gfx__\n0000\n__sfx__\n0101\n"
    base = parse_cart(existing, CartFormat())

    data = CartSerializer().render(_tabs(("main", "new()")), base).to_bytes()

    assert data == HEADER + b"__lua__\nnew()\n__gfx__\n0000\n__sfx__\n0101\n"
    assert base.asset_sections == ["__gfx__", "__sfx__"]


def test_assets_are_dropped_when_preservation_is_disabled() -> None:
    cart_format = CartFormat(preserve_assets=False)
    existing = HEADER + b"__lua__\nold()\n__gfx__\n0000\n"

    data = CartSerializer(cart_format).render(_tabs(("main", "new()\n")), parse_cart(existing, cart_format)).to_bytes()

    assert data == HEADER + b"__lua__\nnew()\n"


def test_split_tabs_reads_back_rendered_tabs() -> None:
    data = CartSerializer().render(_tabs(("a", "1\n"), ("b", "2\n"), ("c", "3\n"))).to_bytes()

    assert split_tabs(parse_cart(data, CartFormat()), CartFormat()) == [b"1\n", b"2\n", b"3\n"]


def test_parse_cart_rejects_foreign_files() -> None:
    with pytest.raises(CartParseError):
        parse_cart(b"#!/bin/sh\necho hi\n", CartFormat())


def test_write_replaces_file_without_leaving_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "out" / "game.p8"
    serializer = CartSerializer()

    serializer.write(serializer.render(_tabs(("main", "a\n"))), target)
    serializer.write(serializer.render(_tabs(("main", "b\n"))), target)

    assert target.read_bytes() == HEADER + b"__lua__\nb\n"
    assert sorted(path.name for path in target.parent.iterdir()) == ["game.p8"]


def test_identical_output_is_not_rewritten(tmp_path: Path) -> None:
    target = tmp_path / "game.p8"
    serializer = CartSerializer()
    artifact = serializer.render(_tabs(("main", "a\n")))
    serializer.write(artifact, target)
    before = target.stat().st_mtime_ns

    serializer.write(artifact, target, previous=target.read_bytes())

    assert target.stat().st_mtime_ns == before


def test_unwritable_destination_raises_io_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    serializer = CartSerializer()

    with pytest.raises(IoError) as excinfo:
        serializer.write(serializer.render(_tabs(("main", "a\n"))), blocker / "game.p8")

    assert excinfo.value.path.endswith("game.p8")


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_rewrite_keeps_existing_cart_mode(tmp_path: Path) -> None:
    target = tmp_path / "game.p8"
    target.write_bytes(b"old")
    os.chmod(target, 0o640)
    serializer = CartSerializer()

    serializer.write(serializer.render(_tabs(("main", "a\n"))), target)

    assert stat.S_IMODE(target.stat().st_mode) == 0o640


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_new_cart_gets_umask_default_mode(tmp_path: Path) -> None:
    target = tmp_path / "game.p8"
    previous = os.umask(0o022)
    try:
        serializer = CartSerializer()
        serializer.write(serializer.render(_tabs(("main", "a\n"))), target)
    finally:
        os.umask(previous)

    assert stat.S_IMODE(target.stat().st_mode) == 0o644
