# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
ROM ELF generation.

The ROM ELF is a copy of the linked loader in which only the symbols the
split application may reference stay global. The application links against
it instead of linking its own copies of the code both halves share.
"""

from dataclasses import dataclass
from pathlib import Path

from splitimage import status
from splitimage.symbol import (
    ELF_EXT,
    ELF_PACKAGE,
    BindingFlags,
    SymbolRecord,
    SymbolSet,
    check_conflicts,
    identical_union,
)
from splitimage.parser import parse_artifact
from splitimage.toolchain import Toolchain

ENTRY_SYMBOL = "_start"

# Roots of the loader's own startup; sharing them would pull the whole
# loader in through the application.
LOADER_ROOT_SYMBOLS = (ENTRY_SYMBOL, "main", "__StackTop", "__StackLimit", "__HeapLimit")

# Linker-synthesized symbols the split application uses to zero bss and
# copy data from the loader before it restarts. They are renamed because
# the application's own link defines the same names.
BOUNDARY_SYMBOLS = (
    "__HeapBase",
    "__bss_start__",
    "__bss_end__",
    "__data_start__",
    "__data_end__",
    "__isr_vector_start",
    "__isr_vector_end",
    "__etext",
)

LOADER_SUFFIX = "_loader"


@dataclass
class RomElf:
    path: Path
    exports: SymbolSet


def boundary_record(name: str, loader_elf_syms: SymbolSet) -> SymbolRecord:
    """The loader's record for a boundary symbol, or an absolute placeholder."""
    record = loader_elf_syms.find(name)
    if record is not None:
        return record
    return SymbolRecord(ELF_PACKAGE, name, BindingFlags.absolute(), "*ABS*", 0, 0, ELF_EXT)


def compute_exports(loader_pkg_syms: SymbolSet, app_pkg_syms: SymbolSet,
                    loader_elf_syms: SymbolSet) -> SymbolSet:
    """
    Work out which loader symbols the application may link against.

    Symbols must be identical (binding, size and package) in the loader's
    and the application's archives and must still be present in the linked
    loader. Global data that differs between the halves raises
    SymbolConflictError.
    """
    shared, conflicts = identical_union(loader_pkg_syms, app_pkg_syms, compare_package=True)
    check_conflicts(conflicts)
    status.status_message(status.DEFAULT, f"{len(shared)} symbols matched in library files")

    for name in LOADER_ROOT_SYMBOLS:
        shared.remove(name)

    # symbols the loader link discarded as dead code cannot be imported
    exports, mismatched = identical_union(shared, loader_elf_syms, compare_package=False)
    for conflict in mismatched:
        status.status_message(status.VERBOSE, f"Not exporting {conflict.describe()}")

    for name in BOUNDARY_SYMBOLS:
        exports.add(boundary_record(name, loader_elf_syms))

    return exports


def generate_rom_elf(
    toolchain: Toolchain,
    loader_elf: Path,
    rom_elf: Path,
    loader_pkg_syms: SymbolSet,
    app_pkg_syms: SymbolSet,
    loader_elf_syms: SymbolSet,
) -> RomElf:
    """Compute the export set and write the ROM ELF next to the loader."""
    exports = compute_exports(loader_pkg_syms, app_pkg_syms, loader_elf_syms)

    status.status_message(status.DEFAULT, f"Generating ROM elf {rom_elf.name} ({len(exports)} symbols)")
    exports.dump("Exporting", status.VERBOSE)

    toolchain.copy_with_symbol_filter(loader_elf, exports.names(), rom_elf)
    toolchain.rename_symbols(rom_elf, BOUNDARY_SYMBOLS, LOADER_SUFFIX)

    return RomElf(rom_elf, exports)


def read_rom_elf_exports(toolchain: Toolchain, rom_elf: Path) -> SymbolSet:
    """
    Recover the export set of an existing ROM ELF.

    Exports are the symbols left global; boundary symbols appear under
    their suffixed names and are mapped back.
    """
    raw = toolchain.dump_symbols(rom_elf)
    symbols = parse_artifact(raw, ELF_PACKAGE, ELF_EXT, memory_only=False)
    exports = SymbolSet()
    for record in symbols:
        if record.is_local():
            continue
        name = record.name
        if name.endswith(LOADER_SUFFIX) and name[:-len(LOADER_SUFFIX)] in BOUNDARY_SYMBOLS:
            name = name[:-len(LOADER_SUFFIX)]
        exports.add(SymbolRecord(record.package, name, record.flags, record.section,
                                 record.size, record.address, record.ext))
    return exports
