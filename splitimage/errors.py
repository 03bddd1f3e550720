# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""Exceptions raised by the split-image build."""

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from splitimage.symbol import SymbolConflict


class SplitImageError(Exception):
    """Base class for every fatal build error."""


class ConfigurationError(SplitImageError):
    """Required board, compiler or link script is missing."""


class ToolchainError(SplitImageError):
    """An external compile/archive/link/dump/objcopy call failed."""

    def __init__(self, cmd: Sequence[str], returncode: Optional[int], output: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        message = f"Command failed ({returncode}): {' '.join(self.cmd)}"
        if output:
            message += f"\n{output.rstrip()}"
        super().__init__(message)


class DependencyCheckError(SplitImageError):
    """A build input could not be stat'ed while checking staleness."""


class GlobalSymbolConflictError(SplitImageError):
    """Two strong global definitions of one name in the same half."""

    def __init__(self, name: str, first_package: str, second_package: str) -> None:
        self.name = name
        self.packages = (first_package, second_package)
        super().__init__(
            f"Global Symbol Conflict: {name} from packages {first_package} and {second_package}"
        )


class SymbolConflictError(SplitImageError):
    """Global data symbols with the same name differ between loader and app."""

    def __init__(self, conflicts: List["SymbolConflict"]) -> None:
        self.conflicts = list(conflicts)
        lines = [f"{len(self.conflicts)} global data symbol conflict(s) between loader and application:"]
        for conflict in self.conflicts:
            lines.append(f"  {conflict.describe()}")
        super().__init__("\n".join(lines))


class CommonPackageError(SplitImageError):
    """A package in both halves is compiled differently for each."""

    def __init__(self, package: str, names: Sequence[str]) -> None:
        self.package = package
        self.names = sorted(names)
        super().__init__(
            f"Common package {package} has a different implementation in the loader and the "
            f"application; non-matching global symbols: {', '.join(self.names)}"
        )
