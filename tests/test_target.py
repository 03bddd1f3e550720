"""Tests for target YAML loading and validation."""

import pytest

from splitimage.errors import ConfigurationError
from splitimage.target import BUILD_DIR_ENV, load_target

SPLIT_TARGET = """
name: nrf52_split
compiler:
  prefix: arm-none-eabi-
  cflags: [-Os]
  lflags: [-nostartfiles]
bsp:
  name: hw/bsp/nrf52dk
  sources: [hw/bsp/nrf52dk/src/system.c]
  linker_script: hw/bsp/nrf52dk/nrf52.ld
  part2_linker_script: hw/bsp/nrf52dk/split-nrf52.ld
  features: [BSP_NRF52]
features: [OS_DEBUG]
app:
  name: apps/blinky
  packages:
    - name: apps/blinky
      sources: [apps/blinky/src/main.c]
      include_dirs: [apps/blinky/include]
    - name: libs/os
      sources: [libs/os/src/os.c]
      cflags: [-DOS_CPU]
loader:
  name: apps/boot
  packages:
    - {name: apps/boot, sources: [apps/boot/src/boot.c]}
"""


def write_target(tmp_path, text):
    path = tmp_path / "target.yml"
    path.write_text(text)
    return path


def test_load_split_target(tmp_path, monkeypatch):
    monkeypatch.delenv(BUILD_DIR_ENV, raising=False)
    target = load_target(write_target(tmp_path, SPLIT_TARGET))
    base = tmp_path.resolve()

    assert target.name == "nrf52_split"
    assert target.is_split
    assert target.build_dir == base / "bin" / "nrf52_split"
    assert target.compiler.prefix == "arm-none-eabi-"
    assert target.compiler.lflags == ["-nostartfiles"]
    assert target.bsp.name == "hw/bsp/nrf52dk"
    assert target.bsp.linker_script == base / "hw/bsp/nrf52dk/nrf52.ld"
    assert target.bsp.package.sources == [base / "hw/bsp/nrf52dk/src/system.c"]
    assert target.features == ["OS_DEBUG"]
    assert [p.name for p in target.app.packages] == ["apps/blinky", "libs/os"]
    assert target.app.packages[0].include_dirs == [base / "apps/blinky/include"]
    assert target.app.packages[1].cflags == ["-DOS_CPU"]
    assert target.loader.name == "apps/boot"

    target.validate()


def test_build_dir_override(tmp_path, monkeypatch):
    path = write_target(tmp_path, SPLIT_TARGET)

    monkeypatch.setenv(BUILD_DIR_ENV, str(tmp_path / "envbin"))
    assert load_target(path).build_dir == tmp_path / "envbin"
    assert load_target(path, tmp_path / "argbin").build_dir == tmp_path / "argbin"


def test_single_image_target_needs_no_part2_script(tmp_path):
    text = SPLIT_TARGET.split("loader:")[0].replace(
        "  part2_linker_script: hw/bsp/nrf52dk/split-nrf52.ld\n", "")
    target = load_target(write_target(tmp_path, text))

    assert not target.is_split
    target.validate()


@pytest.mark.parametrize("drop, message", [
    ("  part2_linker_script: hw/bsp/nrf52dk/split-nrf52.ld\n", "part2 linker script"),
    ("  linker_script: hw/bsp/nrf52dk/nrf52.ld\n", "does not specify a linker script"),
])
def test_missing_linker_scripts(tmp_path, drop, message):
    target = load_target(write_target(tmp_path, SPLIT_TARGET.replace(drop, "")))

    with pytest.raises(ConfigurationError, match=message):
        target.validate()


def test_missing_bsp_and_compiler(tmp_path):
    target = load_target(write_target(tmp_path, "name: bare\napp: {name: apps/blinky}\n"))
    with pytest.raises(ConfigurationError, match="BSP package not specified"):
        target.validate()

    text = SPLIT_TARGET.replace("compiler:\n  prefix: arm-none-eabi-\n  cflags: [-Os]\n  lflags: [-nostartfiles]\n", "")
    target = load_target(write_target(tmp_path, text))
    with pytest.raises(ConfigurationError, match="Compiler not specified"):
        target.validate()


def test_invalid_files(tmp_path):
    with pytest.raises(ConfigurationError):
        load_target(tmp_path / "missing.yml")

    with pytest.raises(ConfigurationError):
        load_target(write_target(tmp_path, "name: [unclosed\n"))

    with pytest.raises(ConfigurationError):
        load_target(write_target(tmp_path, "- just a list\n"))
