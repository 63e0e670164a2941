"""
Platform capability configuration.

A platform file states, before any resolution happens, which native C types
exist (and their sizes), the sizes of the library types behind the semantic
tags, and which integer/real widths the Fortran runtime declares kinds for.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from kindmatch.errors import ConfigError
from kindmatch.probe import CANONICAL_WIDTHS, KNOWN_C_TYPES, TypeFamily
from kindmatch.yaml_subset import load_yaml_subset

FORMAT_VERSION = 1

DEFAULT_C_HEADER = "H5f90i_gen.h"
DEFAULT_FORTRAN_MODULE = "H5fortran_types.f90"
DEFAULT_MODULE_NAME = "H5FORTRAN_TYPES"
DEFAULT_C_INCLUDES: Tuple[str, ...] = ("H5public.h",)


@dataclass(frozen=True)
class FortranDefault:
    width: int
    kind: int


@dataclass(frozen=True)
class OutputLayout:
    c_header: str = DEFAULT_C_HEADER
    fortran_module: str = DEFAULT_FORTRAN_MODULE
    module_name: str = DEFAULT_MODULE_NAME
    c_includes: Tuple[str, ...] = DEFAULT_C_INCLUDES
    platform_name: str = ""


@dataclass(frozen=True)
class PlatformConfig:
    name: str
    description: str
    c_types: Dict[str, int]
    library_sizes: Dict[str, int]
    integer_kinds: Dict[int, int]
    real_kinds: Dict[int, int]
    default_integer: FortranDefault
    default_real: FortranDefault
    default_double: FortranDefault
    outputs: OutputLayout = field(default_factory=OutputLayout)

    def declared_kinds(self, family: TypeFamily) -> Dict[int, int]:
        return self.integer_kinds if family is TypeFamily.INTEGER else self.real_kinds


def _require_keys(obj: Dict[str, Any], keys: Sequence[str], *, where: str) -> None:
    missing = [k for k in keys if k not in obj]
    if missing:
        raise ConfigError(f"{where}: missing required keys: {', '.join(missing)}")


def _expect_type(value: Any, expected: type, *, where: str) -> None:
    if not isinstance(value, expected):
        raise ConfigError(f"{where}: expected {expected.__name__}, got {type(value).__name__}")


def _positive_int(value: Any, *, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{where}: must be a positive integer, got {value!r}")
    return value


def _size_table(raw: Any, *, where: str, known: Optional[Sequence[str]] = None) -> Dict[str, int]:
    _expect_type(raw, dict, where=where)
    sizes: Dict[str, int] = {}
    for name, size in raw.items():
        if known is not None and name not in known:
            raise ConfigError(f"{where}: unknown C type {name!r}")
        sizes[name] = _positive_int(size, where=f"{where}.{name}")
    return sizes


def _kind_table(raw: Any, family: TypeFamily, *, where: str) -> Dict[int, int]:
    _expect_type(raw, list, where=where)
    canonical = CANONICAL_WIDTHS[family]
    kinds: Dict[int, int] = {}
    for entry in raw:
        _expect_type(entry, dict, where=f"{where}[]")
        _require_keys(entry, ["width", "kind"], where=f"{where}[]")
        width = _positive_int(entry["width"], where=f"{where}[].width")
        if width not in canonical:
            allowed = ", ".join(str(w) for w in canonical)
            raise ConfigError(f"{where}: width {width} is not one of {allowed}")
        if width in kinds:
            raise ConfigError(f"{where}: duplicate width {width}")
        kinds[width] = _positive_int(entry["kind"], where=f"{where}[{width}].kind")
    return dict(sorted(kinds.items()))


def _fortran_default(raw: Any, family: TypeFamily, *, where: str) -> FortranDefault:
    _expect_type(raw, dict, where=where)
    _require_keys(raw, ["width", "kind"], where=where)
    width = _positive_int(raw["width"], where=f"{where}.width")
    if width not in CANONICAL_WIDTHS[family]:
        raise ConfigError(f"{where}: width {width} is not a canonical {family.value} width")
    return FortranDefault(width=width, kind=_positive_int(raw["kind"], where=f"{where}.kind"))


def _output_layout(raw: Any, platform_name: str, *, where: str) -> OutputLayout:
    if raw is None:
        return OutputLayout(platform_name=platform_name)
    _expect_type(raw, dict, where=where)
    includes = raw.get("c_includes", list(DEFAULT_C_INCLUDES))
    if isinstance(includes, str):
        includes = [includes]
    _expect_type(includes, list, where=f"{where}.c_includes")
    layout = OutputLayout(
        c_header=str(raw.get("c_header", DEFAULT_C_HEADER)),
        fortran_module=str(raw.get("fortran_module", DEFAULT_FORTRAN_MODULE)),
        module_name=str(raw.get("module_name", DEFAULT_MODULE_NAME)),
        c_includes=tuple(str(i) for i in includes),
        platform_name=platform_name,
    )
    for key in ("c_header", "fortran_module", "module_name"):
        if getattr(layout, key).strip() == "":
            raise ConfigError(f"{where}.{key}: must not be empty")
    if layout.c_header == layout.fortran_module:
        raise ConfigError(f"{where}: c_header and fortran_module must differ")
    return layout


def _check_default_kinds(config: PlatformConfig, *, where: str) -> None:
    defaults = (
        ("default_integer", config.default_integer, config.integer_kinds),
        ("default_real", config.default_real, config.real_kinds),
        ("default_double", config.default_double, config.real_kinds),
    )
    for key, default, table in defaults:
        declared = table.get(default.width)
        if declared is not None and declared != default.kind:
            raise ConfigError(
                f"{where}.{key}: kind {default.kind} disagrees with the declared "
                f"kind {declared} for width {default.width}"
            )


def platform_from_dict(data: Dict[str, Any], *, source: str = "<platform>") -> PlatformConfig:
    _require_keys(
        data,
        ["format_version", "name", "description", "c_types", "library_sizes", "fortran"],
        where=source,
    )
    if data["format_version"] != FORMAT_VERSION:
        raise ConfigError(f"{source}: format_version must be {FORMAT_VERSION}")
    name = str(data["name"])

    fortran = data["fortran"]
    _expect_type(fortran, dict, where=f"{source}:fortran")
    _require_keys(
        fortran,
        ["integer_kinds", "real_kinds", "default_integer", "default_real", "default_double"],
        where=f"{source}:fortran",
    )

    config = PlatformConfig(
        name=name,
        description=str(data["description"]),
        c_types=_size_table(data["c_types"], where=f"{source}:c_types", known=KNOWN_C_TYPES),
        library_sizes=_size_table(data["library_sizes"], where=f"{source}:library_sizes"),
        integer_kinds=_kind_table(
            fortran["integer_kinds"], TypeFamily.INTEGER, where=f"{source}:fortran.integer_kinds"
        ),
        real_kinds=_kind_table(
            fortran["real_kinds"], TypeFamily.FLOAT, where=f"{source}:fortran.real_kinds"
        ),
        default_integer=_fortran_default(
            fortran["default_integer"], TypeFamily.INTEGER, where=f"{source}:fortran.default_integer"
        ),
        default_real=_fortran_default(
            fortran["default_real"], TypeFamily.FLOAT, where=f"{source}:fortran.default_real"
        ),
        default_double=_fortran_default(
            fortran["default_double"], TypeFamily.FLOAT, where=f"{source}:fortran.default_double"
        ),
        outputs=_output_layout(data.get("outputs"), name, where=f"{source}:outputs"),
    )
    _check_default_kinds(config, where=f"{source}:fortran")
    return config


def load_platform(path: Path) -> PlatformConfig:
    if not path.exists():
        raise ConfigError(f"Missing platform file: {path.as_posix()}")
    return platform_from_dict(load_yaml_subset(path), source=path.as_posix())
