# SPDX-FileCopyrightText: 2026 splitimage contributors
# SPDX-License-Identifier: MIT

"""
Target configuration.

A target is described by a YAML file naming the BSP, the compiler and the
packages that make up the application and, for split images, the loader.
Relative paths are resolved against the directory holding the YAML file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from splitimage.errors import ConfigurationError

BUILD_DIR_ENV = "SPLITIMAGE_BUILD_DIR"


@dataclass
class PackageConfig:
    """One source package compiled into its own archive."""
    name: str
    sources: List[Path] = field(default_factory=list)
    cflags: List[str] = field(default_factory=list)
    include_dirs: List[Path] = field(default_factory=list)


@dataclass
class CompilerConfig:
    prefix: str = ""
    cflags: List[str] = field(default_factory=list)
    lflags: List[str] = field(default_factory=list)


@dataclass
class BspConfig:
    package: PackageConfig
    linker_script: Optional[Path] = None
    part2_linker_script: Optional[Path] = None
    features: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.package.name


@dataclass
class HalfConfig:
    """Packages of the application or the loader."""
    name: str
    packages: List[PackageConfig] = field(default_factory=list)


@dataclass
class TargetConfig:
    name: str
    build_dir: Path
    compiler: Optional[CompilerConfig] = None
    bsp: Optional[BspConfig] = None
    app: Optional[HalfConfig] = None
    loader: Optional[HalfConfig] = None
    features: List[str] = field(default_factory=list)

    @property
    def is_split(self) -> bool:
        return self.loader is not None

    def validate(self) -> None:
        """Raise ConfigurationError if anything the build needs is missing."""
        if self.bsp is None:
            raise ConfigurationError(f"BSP package not specified by target {self.name}")
        if self.compiler is None:
            raise ConfigurationError(f"Compiler not specified by target {self.name}")
        if self.app is None:
            raise ConfigurationError(f"Application not specified by target {self.name}")
        if self.bsp.linker_script is None:
            raise ConfigurationError(f"BSP {self.bsp.name} does not specify a linker script")
        if self.is_split and self.bsp.part2_linker_script is None:
            raise ConfigurationError(
                f"BSP {self.bsp.name} must specify a part2 linker script for split image builds")


def _paths(base: Path, values: Optional[List[str]]) -> List[Path]:
    return [base / v for v in (values or [])]


def _package(base: Path, data: Dict[str, Any]) -> PackageConfig:
    if "name" not in data:
        raise ConfigurationError(f"Package entry without a name: {data}")
    return PackageConfig(
        name=data["name"],
        sources=_paths(base, data.get("sources")),
        cflags=list(data.get("cflags") or []),
        include_dirs=_paths(base, data.get("include_dirs")),
    )


def _half(base: Path, data: Optional[Dict[str, Any]], role: str) -> Optional[HalfConfig]:
    if not data:
        return None
    if "name" not in data:
        raise ConfigurationError(f"The {role} section needs a name")
    return HalfConfig(
        name=data["name"],
        packages=[_package(base, p) for p in data.get("packages") or []],
    )


def parse_target(data: Dict[str, Any], base: Path, build_dir: Optional[Path] = None) -> TargetConfig:
    """Build a TargetConfig from already loaded YAML data."""
    if not isinstance(data, dict) or "name" not in data:
        raise ConfigurationError("Target file must be a mapping with a name")

    name = data["name"]

    compiler = None
    if data.get("compiler") is not None:
        compiler_data = data["compiler"] or {}
        compiler = CompilerConfig(
            prefix=compiler_data.get("prefix", ""),
            cflags=list(compiler_data.get("cflags") or []),
            lflags=list(compiler_data.get("lflags") or []),
        )

    bsp = None
    bsp_data = data.get("bsp")
    if bsp_data:
        linker_script = bsp_data.get("linker_script")
        part2 = bsp_data.get("part2_linker_script")
        bsp = BspConfig(
            package=_package(base, bsp_data),
            linker_script=base / linker_script if linker_script else None,
            part2_linker_script=base / part2 if part2 else None,
            features=list(bsp_data.get("features") or []),
        )

    if build_dir is None:
        env_dir = os.environ.get(BUILD_DIR_ENV)
        if env_dir:
            build_dir = Path(env_dir)
        else:
            build_dir = base / data.get("build_dir", f"bin/{name}")

    return TargetConfig(
        name=name,
        build_dir=Path(build_dir),
        compiler=compiler,
        bsp=bsp,
        app=_half(base, data.get("app"), "app"),
        loader=_half(base, data.get("loader"), "loader"),
        features=list(data.get("features") or []),
    )


def load_target(path: Path, build_dir: Optional[Path] = None) -> TargetConfig:
    """Read a target YAML file."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read target file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid target file {path}: {e}") from e

    return parse_target(data, path.parent.resolve(), build_dir)
