# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
Symbol records and symbol sets.

A SymbolSet maps a symbol name to the record describing it. Sets are built
per artifact (one per package archive, one per linked binary) and combined
with identical_union() and merge(), which follow the linker's resolution
rules for local, weak and global bindings.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from splitimage import status
from splitimage.errors import GlobalSymbolConflictError, SymbolConflictError

# Provenance of records parsed from a linked binary rather than an archive.
ELF_PACKAGE = "elf"

ARCHIVE_EXT = ".a"
ELF_EXT = ".elf"

COMMON_SECTION = "*COM*"


@dataclass(frozen=True)
class BindingFlags:
    """Decoded form of the 7-character objdump flag column.

    Column layout: binding (l/g/u/!), weak (w), constructor (C),
    warning (W), indirect (I/i), debug or dynamic (d/D), and kind
    (F function, f file, O object).
    """

    local: bool = False
    global_: bool = False
    unique: bool = False
    weak: bool = False
    constructor: bool = False
    warning: bool = False
    indirect: bool = False
    debug: bool = False
    dynamic: bool = False
    function: bool = False
    file: bool = False
    object: bool = False
    code: str = field(default="       ", compare=False)

    @classmethod
    def decode(cls, code: str) -> "BindingFlags":
        code = code.ljust(7)
        binding = code[0]
        return cls(
            # "!" marks a symbol that is both local and global
            local=binding in "l!",
            global_=binding in "g!",
            unique=binding == "u",
            weak=code[1] == "w",
            constructor=code[2] == "C",
            warning=code[3] == "W",
            indirect=code[4] in "Ii",
            debug=code[5] == "d",
            dynamic=code[5] == "D",
            function=code[6] == "F",
            file=code[6] == "f",
            object=code[6] == "O",
            code=code[:7],
        )

    @classmethod
    def absolute(cls) -> "BindingFlags":
        """Flags of a linker-synthesized global with no type."""
        return cls.decode("g      ")


@dataclass(frozen=True)
class SymbolRecord:
    package: str
    name: str
    flags: BindingFlags
    section: str
    size: int
    address: int
    ext: str = ""

    def is_local(self) -> bool:
        return self.flags.local

    def is_weak(self) -> bool:
        return self.flags.weak

    def is_global(self) -> bool:
        """Strong external linkage: global or unique binding, not weak."""
        return (self.flags.global_ or self.flags.unique) and not self.flags.local

    def is_common(self) -> bool:
        """Tentative definition; objdump leaves the binding column blank."""
        return self.section == COMMON_SECTION

    def is_global_data(self) -> bool:
        return (self.is_global() or self.is_common()) and not self.is_function()

    def is_function(self) -> bool:
        return self.flags.function

    def is_debug(self) -> bool:
        return self.flags.debug

    def is_file(self) -> bool:
        return self.flags.file

    def is_section(self, prefix: str) -> bool:
        return self.section.startswith(prefix)

    @property
    def from_archive(self) -> bool:
        return self.ext == ARCHIVE_EXT

    def describe(self) -> str:
        return (f"{self.name}({self.ext}) ({self.flags.code}) -- ({self.section}) "
                f"size {self.size:#x} at {self.address:#010x} from {self.package}")


class SymbolSet:
    """Symbols keyed by name. Adding a name that exists replaces it."""

    def __init__(self, records=()) -> None:
        self._symbols: Dict[str, SymbolRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: SymbolRecord) -> None:
        self._symbols[record.name] = record

    def find(self, name: str) -> Optional[SymbolRecord]:
        return self._symbols.get(name)

    def remove(self, name: str) -> None:
        self._symbols.pop(name, None)

    def names(self) -> Set[str]:
        return set(self._symbols)

    def copy(self) -> "SymbolSet":
        return SymbolSet(self._symbols.values())

    def __contains__(self, name: object) -> bool:
        return name in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)

    def __iter__(self) -> Iterator[SymbolRecord]:
        return iter(list(self._symbols.values()))

    def __repr__(self) -> str:
        return f"SymbolSet({len(self)} symbols)"

    def filter(self, predicate) -> "SymbolSet":
        return SymbolSet(r for r in self._symbols.values() if predicate(r))

    def filter_section(self, prefix: str) -> "SymbolSet":
        return self.filter(lambda r: r.is_section(prefix))

    def filter_package(self, package: str) -> "SymbolSet":
        return self.filter(lambda r: r.package == package)

    def global_data_only(self) -> "SymbolSet":
        return self.filter(lambda r: r.is_global_data())

    def global_functions_only(self) -> "SymbolSet":
        return self.filter(lambda r: r.is_global() and r.is_function())

    def packages(self) -> Set[str]:
        return {r.package for r in self._symbols.values()}

    def dump(self, title: str, level: int = status.DEFAULT) -> None:
        status.status_message(level, f"{title} ({len(self)} symbols)")
        for name in sorted(self._symbols):
            status.status_message(level, f"  {self._symbols[name].describe()}")


@dataclass(frozen=True)
class SymbolConflict:
    """A global data symbol whose two definitions disagree."""

    name: str
    first: SymbolRecord
    second: SymbolRecord

    def describe(self) -> str:
        return (f"{self.name}: {self.first.package} ({self.first.section}, size {self.first.size:#x}) "
                f"vs {self.second.package} ({self.second.section}, size {self.second.size:#x})")


def _same_identity(a: SymbolRecord, b: SymbolRecord, compare_package: bool) -> bool:
    if compare_package and a.package != b.package:
        return False
    return a.flags == b.flags and a.size == b.size


def identical_union(a: SymbolSet, b: SymbolSet,
                    compare_package: bool) -> Tuple[SymbolSet, List[SymbolConflict]]:
    """
    Return the symbols present and identical in both sets.

    Two records are identical when their binding flags and size match, and,
    if compare_package is set, they come from the same package. The record
    from ``a`` is kept. A name present in both sets whose records differ
    and which is global data in both (common symbols included) is returned
    as a conflict; other mismatches (functions, locals, weak symbols) are
    left out of the result.
    """
    shared = SymbolSet()
    conflicts: List[SymbolConflict] = []

    for first in a:
        second = b.find(first.name)
        if second is None:
            continue

        if _same_identity(first, second, compare_package):
            shared.add(first)
        elif first.is_global_data() and second.is_global_data():
            conflicts.append(SymbolConflict(first.name, first, second))
        else:
            status.status_message(
                status.VERBOSE,
                f"Symbol {first.name} differs: {first.package} ({first.flags.code.strip()}, "
                f"{first.size:#x}) vs {second.package} ({second.flags.code.strip()}, {second.size:#x})")

    conflicts.sort(key=lambda c: c.name)
    return shared, conflicts


def check_conflicts(conflicts: List[SymbolConflict]) -> None:
    """Raise SymbolConflictError if any conflicts were found."""
    if not conflicts:
        return
    for conflict in conflicts:
        status.status_message(status.QUIET, f"Global data symbol conflict: {conflict.describe()}")
    raise SymbolConflictError(conflicts)


def merge(target: SymbolSet, source: SymbolSet) -> SymbolSet:
    """
    Fold source into target, resolving duplicates like a linker.

    A strong definition replaces a weak one and a weak one never replaces
    a strong one. Two locals of the same name belong to different
    packages; the incoming one is dropped from source and target keeps
    its own. Between a local and a global the global stays. Common symbols
    fold into a real definition or into the largest common. Two strong
    globals raise GlobalSymbolConflictError.
    """
    for incoming in source:
        existing = target.find(incoming.name)
        if existing is None:
            target.add(incoming)
            continue

        if existing.is_local() and incoming.is_local():
            status.status_message(
                status.VERBOSE,
                f"Local Symbol Conflict: {incoming.name} from packages "
                f"{incoming.package} and {existing.package}")
            source.remove(incoming.name)
        elif existing.is_local() or incoming.is_local():
            if existing.is_local():
                target.add(incoming)
        elif existing.is_common() or incoming.is_common():
            # a real definition absorbs common ones, else the largest common wins
            if existing.is_common() and (not incoming.is_common() or incoming.size > existing.size):
                target.add(incoming)
        elif existing.is_weak() and not incoming.is_weak():
            target.add(incoming)
        elif incoming.is_weak():
            # keeps the first of two weak definitions, as the linker does
            pass
        else:
            status.status_message(
                status.QUIET,
                f"Global Symbol Conflict: {incoming.name} from packages "
                f"{incoming.package} and {existing.package}")
            raise GlobalSymbolConflictError(incoming.name, existing.package, incoming.package)

    return target
