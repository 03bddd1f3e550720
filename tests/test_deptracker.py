"""Tests for ROM ELF and object staleness decisions."""

import os

import pytest

from splitimage.deptracker import (
    build_required,
    object_build_required,
    rom_elf_build_required,
    write_if_changed,
)
from splitimage.errors import DependencyCheckError


def make(path, mtime):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(path.name)
    os.utime(path, (mtime, mtime))
    return path


def test_missing_rom_elf_requires_build(tmp_path):
    loader = make(tmp_path / "loader.elf", 1000)
    assert rom_elf_build_required(tmp_path / "loader_rom.elf", loader, [])


def test_up_to_date_rom_elf_is_reused(tmp_path):
    loader = make(tmp_path / "loader.elf", 1000)
    archive = make(tmp_path / "libs_os.a", 1000)
    rom = make(tmp_path / "loader_rom.elf", 2000)

    assert not rom_elf_build_required(rom, loader, [archive])


def test_newer_loader_or_archive_requires_build(tmp_path):
    loader = make(tmp_path / "loader.elf", 1000)
    archive = make(tmp_path / "libs_os.a", 1000)
    rom = make(tmp_path / "loader_rom.elf", 2000)

    os.utime(archive, (3000, 3000))
    assert rom_elf_build_required(rom, loader, [archive])

    os.utime(archive, (1000, 1000))
    os.utime(loader, (3000, 3000))
    assert rom_elf_build_required(rom, loader, [archive])


def test_missing_input_is_an_error(tmp_path):
    rom = make(tmp_path / "loader_rom.elf", 2000)

    with pytest.raises(DependencyCheckError):
        rom_elf_build_required(rom, tmp_path / "loader.elf", [])


def test_object_build_required(tmp_path):
    src = make(tmp_path / "os.c", 1000)
    obj = tmp_path / "os.o"

    assert object_build_required(src, obj)
    make(obj, 2000)
    assert not object_build_required(src, obj)
    os.utime(src, (3000, 3000))
    assert object_build_required(src, obj)


def test_build_required_equal_mtime_is_up_to_date(tmp_path):
    src = make(tmp_path / "a", 1000)
    out = make(tmp_path / "b", 1000)
    assert not build_required(out, [src])


def test_write_if_changed(tmp_path):
    path = tmp_path / "keep.txt"

    assert write_if_changed(str(path), "foo\n")
    os.utime(path, (1000, 1000))

    assert not write_if_changed(str(path), "foo\n")
    assert path.stat().st_mtime == 1000

    assert write_if_changed(str(path), "bar\n")
    assert path.read_text() == "bar\n"
