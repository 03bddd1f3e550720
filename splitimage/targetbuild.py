# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
Split-image build orchestration.

A target with a loader is built in this order:

1. Prepare the loader and application builders from the target config.
2. Build and link the loader with the BSP's default linker script.
3. Build the application (compiled with SPLIT_APPLICATION).
4. Check whether the ROM ELF is out of date.
5. Reconcile symbols and regenerate the ROM ELF if it is. A package in
   both halves that is only partly shared aborts the build here.
6. Link the application against the ROM ELF with the part2 linker script.

Targets without a loader are built and linked as a single image. The first
error aborts the build.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from splitimage import status
from splitimage.builder import Builder
from splitimage.deptracker import rom_elf_build_required
from splitimage.errors import CommonPackageError
from splitimage.romelf import generate_rom_elf, read_rom_elf_exports
from splitimage.symbol import SymbolSet, identical_union
from splitimage.target import TargetConfig
from splitimage.toolchain import Toolchain

LOADER_FEATURE = "SPLIT_LOADER"
APP_FEATURE = "SPLIT_APPLICATION"


@dataclass
class HalfResult:
    """Outcome of one half: its binary and the symbols reconciled for it."""
    name: str
    elf: Path
    symbols: SymbolSet = field(default_factory=SymbolSet)


@dataclass
class BuildResult:
    app: HalfResult
    loader: Optional[HalfResult] = None
    rom_elf: Optional[Path] = None
    exports: SymbolSet = field(default_factory=SymbolSet)
    common_packages: Set[str] = field(default_factory=set)
    rom_elf_regenerated: bool = False

    @property
    def split(self) -> bool:
        return self.loader is not None


@dataclass
class LoaderStage:
    pkg_syms: SymbolSet
    elf_syms: SymbolSet


def common_packages(app_pkg_syms: SymbolSet, exports: SymbolSet, keep: Set[str]) -> Set[str]:
    """
    Packages the application can take entirely from the loader.

    A package qualifies when it defines at least one non-local symbol and
    every one of them is exported by the ROM ELF. Packages in ``keep`` never
    qualify.
    """
    candidates = {}
    for record in app_pkg_syms:
        if record.is_local() or record.package in keep:
            continue
        exported = record.name in exports
        candidates[record.package] = candidates.get(record.package, True) and exported
    return {name for name, all_exported in candidates.items() if all_exported}


def check_common_packages(loader_pkg_syms: SymbolSet, app_pkg_syms: SymbolSet,
                          exports: SymbolSet, skip: Set[str]) -> None:
    """
    Refuse packages that are only partly shared between the halves.

    A package present in both halves that has symbols exported by the ROM
    ELF but also non-local symbols compiled differently for each half would
    be linked into the application next to the loader's copies. Packages in
    ``skip`` are not checked.
    """
    exported: Set[str] = set()
    mismatched: Dict[str, List[str]] = {}
    for record in app_pkg_syms:
        if record.is_local() or record.package in skip:
            continue
        if record.name in exports:
            exported.add(record.package)
            continue
        other = loader_pkg_syms.find(record.name)
        if other is None or other.package != record.package:
            continue
        if other.flags != record.flags or other.size != record.size:
            mismatched.setdefault(record.package, []).append(record.name)

    for package in sorted(mismatched):
        if package not in exported:
            continue
        status.status_message(status.QUIET, f"We have non-matching global symbols in {package}")
        for name in sorted(mismatched[package]):
            status.status_message(status.QUIET, f"  {app_pkg_syms.find(name).describe()}")
        raise CommonPackageError(package, mismatched[package])


class TargetBuilder:
    def __init__(self, target: TargetConfig, toolchain: Toolchain) -> None:
        self.target = target
        self.toolchain = toolchain
        self.app: Optional[Builder] = None
        self.loader: Optional[Builder] = None

    def _features(self, extra: Optional[str]) -> List[str]:
        features = list(self.target.features) + list(self.target.bsp.features)
        if extra:
            features.append(extra)
        return features

    def prep_build(self) -> None:
        if self.app is not None:
            # Already prepped
            return

        self.target.validate()
        bsp_package = self.target.bsp.package

        if self.target.loader is not None:
            self.loader = Builder(
                "loader",
                self.target,
                self.toolchain,
                [bsp_package] + self.target.loader.packages,
                self._features(LOADER_FEATURE),
            )

        self.app = Builder(
            "app",
            self.target,
            self.toolchain,
            [bsp_package] + self.target.app.packages,
            self._features(APP_FEATURE if self.loader else None),
        )

    def build(self) -> BuildResult:
        self.prep_build()
        bsp = self.target.bsp

        # if we have no loader, this is a plain single image
        if self.loader is None:
            self.app.build()
            elf = self.app.link(bsp.linker_script)
            status.status_message(status.DEFAULT, f"App successfully built: {elf}")
            return BuildResult(app=HalfResult(self.app.name, elf))

        loader_stage = self._build_loader()
        app_pkg_syms = self._build_app()
        rom_elf, exports, regenerated = self._reconcile(loader_stage, app_pkg_syms)

        check_common_packages(loader_stage.pkg_syms, app_pkg_syms, exports,
                              skip={self.target.app.name, self.target.loader.name})

        keep = {bsp.name, self.target.app.name}
        shared_pkgs = common_packages(app_pkg_syms, exports, keep)
        if shared_pkgs:
            status.status_message(
                status.DEFAULT,
                f"Linking {len(shared_pkgs)} packages from the loader: {', '.join(sorted(shared_pkgs))}")
        self.app.remove_packages(shared_pkgs)

        app_elf = self.app.link(bsp.part2_linker_script, symbol_files=[rom_elf])

        self._report_final_symbols()

        status.status_message(status.DEFAULT, f"Loader successfully built: {self.loader.elf_path}")
        status.status_message(status.DEFAULT, f"App successfully built: {app_elf}")

        return BuildResult(
            app=HalfResult(self.app.name, app_elf, app_pkg_syms),
            loader=HalfResult(self.loader.name, self.loader.elf_path, exports),
            rom_elf=rom_elf,
            exports=exports,
            common_packages=shared_pkgs,
            rom_elf_regenerated=regenerated,
        )

    def _build_loader(self) -> LoaderStage:
        self.loader.build()
        self.loader.link(self.target.bsp.linker_script)
        return LoaderStage(
            pkg_syms=self.loader.extract_symbol_info(),
            elf_syms=self.loader.parse_elf(),
        )

    def _build_app(self) -> SymbolSet:
        self.app.build()
        return self.app.extract_symbol_info()

    def _reconcile(self, loader_stage: LoaderStage, app_pkg_syms: SymbolSet):
        """Regenerate the ROM ELF if needed; return (path, exports, regenerated)."""
        rom_elf = self.loader.rom_elf_path
        inputs = self.loader.archives() + self.app.archives()

        if not rom_elf_build_required(rom_elf, self.loader.elf_path, inputs):
            status.status_message(status.VERBOSE, f"{rom_elf.name} is up to date")
            return rom_elf, read_rom_elf_exports(self.toolchain, rom_elf), False

        generated = generate_rom_elf(
            self.toolchain,
            self.loader.elf_path,
            rom_elf,
            loader_stage.pkg_syms,
            app_pkg_syms,
            loader_stage.elf_syms,
        )
        return generated.path, generated.exports, True

    def _report_final_symbols(self) -> None:
        """Dump global symbols the two final binaries still define differently."""
        if status.get_verbosity() < status.VERBOSE:
            return
        app_syms = self.app.parse_elf()
        loader_syms = self.loader.parse_elf()
        shared, _ = identical_union(app_syms, loader_syms, compare_package=False)
        differing = app_syms.filter(lambda r: r.name in loader_syms and r.name not in shared)
        differing.global_data_only().dump("non matching Global Data symbols", status.VERBOSE)
        differing.global_functions_only().dump("non matching Global Code symbols", status.VERBOSE)
