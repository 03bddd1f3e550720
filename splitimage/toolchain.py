# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
Toolchain capabilities used by the split-image build.

The build never edits object code itself. Everything that touches a binary
(compile, archive, link, symbol dumps, objcopy symbol edits) goes through a
Toolchain. GnuToolchain drives a GCC/binutils cross toolchain.
"""

import abc
import os
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from splitimage import status
from splitimage.deptracker import build_required, object_build_required, write_if_changed
from splitimage.errors import ToolchainError


class Toolchain(abc.ABC):
    """External toolchain operations, one call per artifact."""

    @abc.abstractmethod
    def compile(self, package, obj_dir: Path, defines: Sequence[str]) -> List[Path]:
        """Compile every source of ``package`` into ``obj_dir``."""

    @abc.abstractmethod
    def archive(self, objects: Sequence[Path], archive_path: Path) -> Path:
        """Pack objects into a static archive."""

    @abc.abstractmethod
    def link(self, archives: Sequence[Path], link_script: Path, output: Path,
             symbol_files: Sequence[Path] = ()) -> Path:
        """Link archives into a binary, importing only the symbols of ``symbol_files``."""

    @abc.abstractmethod
    def dump_symbols(self, artifact: Path) -> str:
        """Return the ``objdump -t`` style listing of an artifact."""

    @abc.abstractmethod
    def copy_with_symbol_filter(self, src: Path, keep: Iterable[str], dst: Path) -> Path:
        """Copy src to dst keeping only ``keep`` as global symbols."""

    @abc.abstractmethod
    def rename_symbols(self, artifact: Path, names: Iterable[str], suffix: str) -> None:
        """Append ``suffix`` to each of ``names`` in place."""

    @abc.abstractmethod
    def weaken_symbol(self, artifact: Path, name: str) -> None:
        pass

    @abc.abstractmethod
    def remove_symbol(self, artifact: Path, name: str) -> None:
        pass

    @abc.abstractmethod
    def rename_section(self, artifact: Path, old: str, new: str) -> None:
        pass


def run_command(cmd: List[str], cwd: Optional[Path] = None) -> str:
    """Run a command and return its stdout, raising ToolchainError on failure."""
    status.status_message(status.VERBOSE, " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise ToolchainError(cmd, None, str(e)) from e

    if result.returncode != 0:
        raise ToolchainError(cmd, result.returncode, (result.stdout or "") + (result.stderr or ""))
    return result.stdout


def object_paths(sources: Sequence[Path], obj_dir: Path) -> List[Path]:
    """
    Object file for each source.

    Objects are named after the source's path below the directory common to
    all sources of the package, flattened with "_" so that archive members
    stay unique.
    """
    sources = [Path(s) for s in sources]
    if not sources:
        return []
    root = Path(os.path.commonpath([str(s.parent) for s in sources]))
    return [obj_dir / ("_".join(s.relative_to(root).with_suffix("").parts) + ".o") for s in sources]


class GnuToolchain(Toolchain):
    """GCC + binutils, e.g. ``arm-none-eabi-``."""

    def __init__(self, prefix: str = "", cflags: Sequence[str] = (), lflags: Sequence[str] = ()) -> None:
        self.prefix = prefix
        self.cflags = list(cflags)
        self.lflags = list(lflags)

    def tool(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def compile(self, package, obj_dir: Path, defines: Sequence[str]) -> List[Path]:
        obj_dir.mkdir(parents=True, exist_ok=True)
        objects = object_paths(package.sources, obj_dir)
        for source, obj in zip(package.sources, objects):
            if not object_build_required(Path(source), obj):
                continue

            status.status_message(status.DEFAULT, f"Compiling {Path(source).name}")
            cmd = [self.tool("gcc"), "-c"]
            cmd += self.cflags
            cmd += list(package.cflags)
            cmd += [f"-I{d}" for d in package.include_dirs]
            cmd += [f"-D{d}" for d in defines]
            cmd += ["-o", str(obj), str(source)]
            run_command(cmd)
        return objects

    def archive(self, objects: Sequence[Path], archive_path: Path) -> Path:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        if not build_required(archive_path, objects):
            return archive_path
        if archive_path.exists():
            archive_path.unlink()
        status.status_message(status.DEFAULT, f"Archiving {archive_path.name}")
        run_command([self.tool("ar"), "rcs", str(archive_path)] + [str(o) for o in objects])
        return archive_path

    def link(self, archives: Sequence[Path], link_script: Path, output: Path,
             symbol_files: Sequence[Path] = ()) -> Path:
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = [self.tool("gcc"), "-o", str(output)]
        cmd += self.lflags
        cmd += [f"-T{link_script}", f"-Wl,-Map={output}.map"]
        # symbols only; none of their sections end up in the output
        cmd += [f"-Wl,--just-symbols={p}" for p in symbol_files]
        cmd += ["-Wl,--start-group"] + [str(a) for a in archives] + ["-Wl,--end-group"]

        # a changed command line (e.g. packages dropped) forces a relink
        cmd_file = output.with_name(output.name + ".cmd")
        write_if_changed(str(cmd_file), " ".join(cmd) + "\n")
        inputs = list(archives) + list(symbol_files) + [Path(link_script), cmd_file]
        if not build_required(output, inputs):
            status.status_message(status.VERBOSE, f"{output.name} is up to date")
            return output

        status.status_message(status.DEFAULT, f"Linking {output.name}")
        run_command(cmd)
        return output

    def dump_symbols(self, artifact: Path) -> str:
        return run_command([self.tool("objdump"), "-t", str(artifact)])

    def copy_with_symbol_filter(self, src: Path, keep: Iterable[str], dst: Path) -> Path:
        keep_file = dst.with_name(dst.name + ".keep")
        write_if_changed(str(keep_file), "".join(f"{name}\n" for name in sorted(keep)))
        run_command([self.tool("objcopy"), f"--keep-global-symbols={keep_file}", str(src), str(dst)])
        return dst

    def rename_symbols(self, artifact: Path, names: Iterable[str], suffix: str) -> None:
        cmd = [self.tool("objcopy")]
        for name in sorted(names):
            cmd += ["--redefine-sym", f"{name}={name}{suffix}"]
        run_command(cmd + [str(artifact)])

    def weaken_symbol(self, artifact: Path, name: str) -> None:
        run_command([self.tool("objcopy"), f"--weaken-symbol={name}", str(artifact)])

    def remove_symbol(self, artifact: Path, name: str) -> None:
        run_command([self.tool("objcopy"), f"--strip-symbol={name}", str(artifact)])

    def rename_section(self, artifact: Path, old: str, new: str) -> None:
        run_command([self.tool("objcopy"), "--rename-section", f"{old}={new}", str(artifact)])
