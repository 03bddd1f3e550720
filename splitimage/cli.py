# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
Command line interface.

Provides commands:
  - splitimage build: Build a target, as a split image if it has a loader
  - splitimage symbols: Dump the parsed symbol table of an archive or ELF
"""

import sys
from pathlib import Path
from typing import Optional

import click

from splitimage import status
from splitimage.errors import SplitImageError
from splitimage.parser import parse_artifact
from splitimage.symbol import ARCHIVE_EXT, ELF_PACKAGE
from splitimage.target import load_target
from splitimage.targetbuild import TargetBuilder
from splitimage.toolchain import GnuToolchain


def _set_verbosity(verbose: bool, quiet: bool) -> None:
    if verbose:
        status.set_verbosity(status.VERBOSE)
    elif quiet:
        status.set_verbosity(status.QUIET)
    else:
        status.set_verbosity(status.DEFAULT)


@click.group()
@click.version_option(package_name="splitimage")
def main() -> None:
    """Split-image firmware build tool."""


@main.command()
@click.argument("target_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--build-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Build directory. Can also be set via SPLITIMAGE_BUILD_DIR environment variable.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show detailed output")
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only show errors")
def build(target_file: Path, build_dir: Optional[Path], verbose: bool, quiet: bool) -> None:
    """Build TARGET_FILE as a single or split image."""
    _set_verbosity(verbose, quiet)

    try:
        target = load_target(target_file, build_dir)
        if target.compiler is None:
            # let validate() report the missing compiler
            target.validate()
        toolchain = GnuToolchain(target.compiler.prefix, target.compiler.cflags, target.compiler.lflags)
        result = TargetBuilder(target, toolchain).build()
    except SplitImageError as e:
        status.red_print(f"Error: {e}")
        sys.exit(1)

    if result.split:
        click.echo(f"Loader: {result.loader.elf}")
        click.echo(f"ROM ELF: {result.rom_elf} ({len(result.exports)} symbols)")
    click.echo(f"App: {result.app.elf}")


@main.command()
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--prefix", default="", help="Toolchain prefix, e.g. arm-none-eabi-")
@click.option("--package", default=None, help="Package name to record as the symbols' provenance")
@click.option("--memory-only", is_flag=True, default=False,
              help="Only show symbols in code/data/bss/common/rodata sections")
def symbols(artifact: Path, prefix: str, package: Optional[str], memory_only: bool) -> None:
    """Dump the symbols of ARTIFACT as the build sees them."""
    ext = artifact.suffix
    if package is None:
        package = artifact.stem if ext == ARCHIVE_EXT else ELF_PACKAGE

    try:
        raw = GnuToolchain(prefix).dump_symbols(artifact)
    except SplitImageError as e:
        status.red_print(f"Error: {e}")
        sys.exit(1)

    parse_artifact(raw, package, ext, memory_only).dump(f"Dumping symbols in file: {artifact}", status.QUIET)


if __name__ == "__main__":
    main()
