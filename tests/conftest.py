"""
pytest configuration for splitimage tests.

Provides a fake toolchain that records every call and writes placeholder
artifacts to disk, so timestamps behave as in a real build, plus helpers
to write objdump-style symbol tables.
"""

import re
from pathlib import Path
from typing import Dict, List

import pytest

from splitimage import status
from splitimage.parser import parse_line
from splitimage.target import BspConfig, CompilerConfig, HalfConfig, PackageConfig, TargetConfig
from splitimage.toolchain import Toolchain


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: full split-image build through the orchestrator")


def sym(address: int, code: str, section: str, size: int, name: str) -> str:
    """One line of ``objdump -t`` output."""
    return f"{address:08x} {code:7} {section}\t{size:08x} {name}"


def symtab(*lines: str) -> str:
    """A complete ``objdump -t`` listing around the given symbol lines."""
    return "\n".join(["", "foo.o:     file format elf32-littlearm", "", "SYMBOL TABLE:"] + list(lines)) + "\n"


class FakeToolchain(Toolchain):
    """Records calls; symbol tables are keyed by path relative to build_dir."""

    def __init__(self, build_dir: Path) -> None:
        self.build_dir = build_dir
        self.tables: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}

    def key(self, path: Path) -> str:
        return Path(path).relative_to(self.build_dir).as_posix()

    def _touch(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            path.write_text("")

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise self.fail_on[op]

    def compile(self, package, obj_dir, defines):
        self._check("compile")
        self.calls.append(("compile", package.name, list(defines)))
        objects = [obj_dir / f"{Path(s).stem}.o" for s in package.sources]
        for obj in objects:
            self._touch(obj)
        return objects

    def archive(self, objects, archive_path):
        self._check("archive")
        self.calls.append(("archive", self.key(archive_path)))
        self._touch(archive_path)
        return archive_path

    def link(self, archives, link_script, output, symbol_files=()):
        self._check("link")
        self.calls.append(("link", self.key(output), [self.key(a) for a in archives],
                           Path(link_script).name, [self.key(p) for p in symbol_files]))
        self._touch(output)
        return output

    def dump_symbols(self, artifact):
        self._check("dump")
        self.calls.append(("dump", self.key(artifact)))
        return self.tables.get(self.key(artifact), "")

    def copy_with_symbol_filter(self, src, keep, dst):
        self._check("copy")
        keep = set(keep)
        self.calls.append(("copy", self.key(src), self.key(dst), sorted(keep)))
        lines = []
        present = set()
        for line in self.tables.get(self.key(src), "").splitlines():
            record = parse_line(line)
            if record is None:
                continue
            present.add(record.name)
            binding = "g" if record.name in keep else "l"
            lines.append(sym(record.address, binding + record.flags.code[1:], record.section,
                             record.size, record.name))
        for name in sorted(keep - present):
            lines.append(sym(0, "g", "*ABS*", 0, name))
        self.tables[self.key(dst)] = symtab(*lines)
        self._touch(dst)
        dst.write_text("rom")
        return dst

    def rename_symbols(self, artifact, names, suffix):
        names = sorted(names)
        self.calls.append(("rename", self.key(artifact), names, suffix))
        text = self.tables.get(self.key(artifact), "")
        for name in names:
            text = re.sub(rf"(\s){re.escape(name)}$", rf"\g<1>{name}{suffix}", text, flags=re.M)
        self.tables[self.key(artifact)] = text

    def weaken_symbol(self, artifact, name):
        self.calls.append(("weaken", self.key(artifact), name))

    def remove_symbol(self, artifact, name):
        self.calls.append(("remove", self.key(artifact), name))

    def rename_section(self, artifact, old, new):
        self.calls.append(("rename_section", self.key(artifact), old, new))

    def ops(self, op: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == op]


@pytest.fixture(autouse=True)
def reset_verbosity():
    status.set_verbosity(status.DEFAULT)
    yield
    status.set_verbosity(status.DEFAULT)


@pytest.fixture
def build_dir(tmp_path) -> Path:
    return tmp_path / "bin"


@pytest.fixture
def fake_toolchain(build_dir) -> FakeToolchain:
    return FakeToolchain(build_dir)


def _pkg(name: str) -> PackageConfig:
    return PackageConfig(name=name, sources=[Path(f"{name}/src/{name.split('/')[-1]}.c")])


@pytest.fixture
def split_target(tmp_path, build_dir) -> TargetConfig:
    """Target with a BSP, a loader (apps/boot + libs/os) and an app (apps/blinky + libs/os)."""
    return TargetConfig(
        name="nrf52_split",
        build_dir=build_dir,
        compiler=CompilerConfig(prefix="arm-none-eabi-"),
        bsp=BspConfig(
            package=_pkg("hw/bsp/nrf52dk"),
            linker_script=tmp_path / "nrf52.ld",
            part2_linker_script=tmp_path / "split-nrf52.ld",
            features=["BSP_NRF52"],
        ),
        app=HalfConfig(name="apps/blinky", packages=[_pkg("apps/blinky"), _pkg("libs/os")]),
        loader=HalfConfig(name="apps/boot", packages=[_pkg("apps/boot"), _pkg("libs/os")]),
    )
