# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
Builder for one half of a target (the application or the loader).

Each package is compiled into its own archive under
``<build_dir>/<half>/lib`` so its symbols can be examined separately, and
the half is linked into ``<build_dir>/<half>/<half>.elf``.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from splitimage import status
from splitimage.parser import parse_artifact
from splitimage.symbol import ARCHIVE_EXT, ELF_EXT, ELF_PACKAGE, SymbolSet, merge
from splitimage.target import PackageConfig, TargetConfig
from splitimage.toolchain import Toolchain


def _file_name(package_name: str) -> str:
    return package_name.replace("/", "_")


class Builder:
    def __init__(
        self,
        name: str,
        target: TargetConfig,
        toolchain: Toolchain,
        packages: Sequence[PackageConfig],
        features: Iterable[str],
    ) -> None:
        self.name = name
        self.target = target
        self.toolchain = toolchain
        self.packages: List[PackageConfig] = list(packages)
        self.features: List[str] = list(features)
        self._archives: Dict[str, Path] = {}

    @property
    def build_dir(self) -> Path:
        return self.target.build_dir / self.name

    @property
    def elf_path(self) -> Path:
        return self.build_dir / f"{self.name}.elf"

    @property
    def rom_elf_path(self) -> Path:
        """Republished loader binary the split application links against."""
        return self.build_dir / f"{self.name}_rom.elf"

    def archive_path(self, package_name: str) -> Path:
        return self.build_dir / "lib" / f"{_file_name(package_name)}{ARCHIVE_EXT}"

    def obj_dir(self, package_name: str) -> Path:
        return self.build_dir / "obj" / _file_name(package_name)

    def archives(self) -> List[Path]:
        """Archives of the packages currently in this half, in package order."""
        return [self._archives[p.name] for p in self.packages if p.name in self._archives]

    def build(self) -> None:
        """Compile and archive every package."""
        status.status_message(status.DEFAULT, f"Building {self.name} ({len(self.packages)} packages)")
        for package in self.packages:
            objects = self.toolchain.compile(package, self.obj_dir(package.name), self.features)
            if not objects:
                status.status_message(status.VERBOSE, f"Package {package.name} has no objects")
                continue
            self._archives[package.name] = self.toolchain.archive(objects, self.archive_path(package.name))

    def link(self, link_script: Path, symbol_files: Sequence[Path] = ()) -> Path:
        return self.toolchain.link(self.archives(), link_script, self.elf_path, symbol_files)

    def remove_packages(self, names: Iterable[str]) -> None:
        """Leave the given packages out of later links. The BSP always stays."""
        names = set(names)
        bsp = self.target.bsp.name if self.target.bsp else None
        names.discard(bsp)
        self.packages = [p for p in self.packages if p.name not in names]

    def extract_symbol_info(self) -> SymbolSet:
        """Merged memory-section symbols of every package archive in this half."""
        symbols = SymbolSet()
        for package in self.packages:
            archive = self._archives.get(package.name)
            if archive is None:
                continue
            raw = self.toolchain.dump_symbols(archive)
            merge(symbols, parse_artifact(raw, package.name, ARCHIVE_EXT, memory_only=True))
        return symbols

    def parse_elf(self, path: Optional[Path] = None) -> SymbolSet:
        """All defined symbols of a linked binary, the half's own by default."""
        raw = self.toolchain.dump_symbols(path or self.elf_path)
        return parse_artifact(raw, ELF_PACKAGE, ELF_EXT, memory_only=False)
