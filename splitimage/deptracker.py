# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""Timestamp based rebuild decisions for generated build artifacts."""

import os
from pathlib import Path
from typing import Iterable, Optional

from splitimage import status
from splitimage.errors import DependencyCheckError


def _mtime(path: Path) -> Optional[float]:
    """Modification time of path, or None if it does not exist."""
    try:
        return os.stat(path).st_mtime
    except FileNotFoundError:
        return None
    except OSError as e:
        raise DependencyCheckError(f"Cannot stat {path}: {e}") from e


def _input_mtime(path: Path) -> float:
    try:
        return os.stat(path).st_mtime
    except OSError as e:
        raise DependencyCheckError(f"Cannot stat build input {path}: {e}") from e


def build_required(output: Path, inputs: Iterable[Path]) -> bool:
    """True if output is missing or any input is newer than it."""
    output_mtime = _mtime(output)
    if output_mtime is None:
        status.status_message(status.VERBOSE, f"{output} does not exist")
        return True

    for path in inputs:
        if _input_mtime(path) > output_mtime:
            status.status_message(status.VERBOSE, f"{path} is newer than {output}")
            return True

    return False


def rom_elf_build_required(rom_elf: Path, loader_elf: Path, archives: Iterable[Path]) -> bool:
    """
    Decide whether the ROM ELF has to be generated again.

    The ROM ELF depends on the loader binary and on every archive that took
    part in symbol reconciliation. It is rebuilt when it does not exist or
    when any of those inputs is newer. An input that cannot be stat'ed is a
    DependencyCheckError; a stale artifact is never silently reused.
    """
    return build_required(rom_elf, [loader_elf] + list(archives))


def object_build_required(source: Path, obj: Path) -> bool:
    return build_required(obj, [source])


def write_if_changed(filepath: str, content: str) -> bool:
    """
    Write content to file only if it differs from existing content.

    This avoids unnecessary timestamp updates that would trigger
    downstream rebuilds when the actual content hasn't changed.

    Returns True if the file was written, False if unchanged.
    """
    try:
        with open(filepath, 'r') as f:
            existing = f.read()
        if existing == content:
            return False
    except FileNotFoundError:
        pass

    with open(filepath, 'w') as f:
        f.write(content)
    return True
