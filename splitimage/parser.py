# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
Parser for ``objdump -t`` symbol table listings.

Each symbol line has the form::

    00012970 l       .bss	00000000 _end
    000084b0 g     F .text	00000034 os_arch_start
    00011c88 g     O .data	00000008 g_os_task_list
    000094e0 g     F .text	0000002e .hidden __gnu_uldivmod_helper
    00000004       O *COM*	00000004 g_console_buf

address, a 7-character flag field (spaces are placeholders), section,
size and name. Anything else in the listing (file headers, archive member
banners, blank lines) is skipped.
"""

import re
from typing import Optional

from splitimage import status
from splitimage.symbol import BindingFlags, SymbolRecord, SymbolSet

SYMBOL_LINE_RE = re.compile(
    r'^([0-9A-Fa-f]+) ([lgu! ][w ][C ][W ][Ii ][Dd ][FfO ])[\t ]+(\S+)[\t ]+(\S+)[\t ]+(\S.*?)\s*$'
)

UNDEFINED_SECTION = "*UND*"

# Sections that occupy program memory; only these matter when deciding
# whether two builds produced the same symbol.
MEMORY_SECTIONS = (".text", ".data", ".bss", "*COM*", ".rodata")

_UINT32_MAX = 0xFFFFFFFF


def _parse_hex32(value: str) -> int:
    number = int(value, 16)
    if number > _UINT32_MAX:
        raise ValueError(f"{value} does not fit in 32 bits")
    return number


def parse_line(line: str, package: str = "", ext: str = "") -> Optional[SymbolRecord]:
    """Parse one symbol table line. Returns None for anything that is not a symbol."""
    match = SYMBOL_LINE_RE.match(line.rstrip("\r\n"))
    if not match:
        return None

    address_text, code, section, size_text, name = match.groups()

    try:
        address = _parse_hex32(address_text)
    except ValueError:
        status.status_message(status.VERBOSE, f"Could not convert location from object file line --- {line.strip()}")
        return None

    try:
        size = _parse_hex32(size_text)
    except ValueError:
        status.status_message(status.VERBOSE, f"Could not convert size from object file line --- {line.strip()}")
        return None

    # visibility markers such as ".hidden" precede the real name
    name = name.split()[-1]

    return SymbolRecord(
        package=package,
        name=name,
        flags=BindingFlags.decode(code),
        section=section,
        size=size,
        address=address,
        ext=ext,
    )


def is_memory_section(section: str) -> bool:
    return section.startswith(MEMORY_SECTIONS)


def parse_artifact(raw_text: str, package: str, ext: str, memory_only: bool) -> SymbolSet:
    """
    Parse a full symbol table dump into a SymbolSet.

    Undefined symbols, debug entries and file entries are dropped. With
    ``memory_only`` set, symbols outside the code/data/bss/common/rodata
    sections are dropped as well.
    """
    symbols = SymbolSet()

    for line in raw_text.splitlines():
        record = parse_line(line, package, ext)
        if record is None:
            continue

        if record.is_section(UNDEFINED_SECTION):
            continue
        if record.is_debug() or record.is_file():
            continue
        if memory_only and not is_memory_section(record.section):
            continue

        symbols.add(record)
        status.status_message(status.VERBOSE, f"Keeping Symbol {record.name} in package {package}")

    return symbols
