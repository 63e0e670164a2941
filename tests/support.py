import copy
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from kindmatch.driver import GenerationDriver, GenerationResult
from kindmatch.emitter import DualFileEmitter
from kindmatch.errors import UnresolvableWidthError
from kindmatch.platform import PlatformConfig, platform_from_dict

REPO_ROOT = Path(__file__).resolve().parents[1]
PLATFORM_DIR = REPO_ROOT / "platforms"
DATA_DIR = Path(__file__).resolve().parent / "data"

LP64_C_TYPES: Dict[str, int] = {
    "long long": 8,
    "long": 8,
    "int": 4,
    "short": 2,
    "char": 1,
    "size_t": 8,
    "hsize_t": 8,
    "long double": 16,
    "double": 8,
    "float": 4,
}

LP64_LIBRARY_SIZES: Dict[str, int] = {
    "haddr_t": 8,
    "hsize_t": 8,
    "hssize_t": 8,
    "off_t": 8,
    "size_t": 8,
    "hid_t": 8,
}


def platform_data(
    *,
    name: str = "test-lp64",
    c_types: Optional[Mapping[str, int]] = None,
    library_sizes: Optional[Mapping[str, int]] = None,
    integer_kinds: Optional[Mapping[int, int]] = None,
    real_kinds: Optional[Mapping[int, int]] = None,
    default_integer: int = 4,
    default_real: int = 4,
    default_double: int = 8,
) -> Dict[str, Any]:
    """Synthetic platform description; kinds default to the byte width."""
    int_kinds = dict(integer_kinds) if integer_kinds is not None else {w: w for w in (1, 2, 4, 8)}
    flt_kinds = dict(real_kinds) if real_kinds is not None else {w: w for w in (4, 8, 16)}

    def default(width: int, table: Dict[int, int]) -> Dict[str, int]:
        return {"width": width, "kind": table.get(width, width)}

    return {
        "format_version": 1,
        "name": name,
        "description": "synthetic platform for tests",
        "c_types": dict(c_types if c_types is not None else LP64_C_TYPES),
        "library_sizes": dict(library_sizes if library_sizes is not None else LP64_LIBRARY_SIZES),
        "fortran": {
            "integer_kinds": [{"width": w, "kind": k} for w, k in sorted(int_kinds.items())],
            "real_kinds": [{"width": w, "kind": k} for w, k in sorted(flt_kinds.items())],
            "default_integer": default(default_integer, int_kinds),
            "default_real": default(default_real, flt_kinds),
            "default_double": default(default_double, flt_kinds),
        },
    }


def make_platform(**kwargs: Any) -> PlatformConfig:
    return platform_from_dict(platform_data(**kwargs), source="<test>")


def without(mapping: Mapping[str, int], names: Iterable[str]) -> Dict[str, int]:
    drop = set(names)
    return {k: v for k, v in copy.deepcopy(dict(mapping)).items() if k not in drop}


@dataclass
class Run:
    result: GenerationResult
    c_text: str
    f_text: str
    stdout: str
    error: Optional[UnresolvableWidthError]


def run_driver(platform: PlatformConfig) -> Run:
    c_stream, f_stream, out = io.StringIO(), io.StringIO(), io.StringIO()
    emitter = DualFileEmitter(c_stream, f_stream, platform.outputs)
    driver = GenerationDriver(platform, emitter, out=out)
    error = None
    try:
        driver.run()
    except UnresolvableWidthError as exc:
        error = exc
    return Run(driver.result(), c_stream.getvalue(), f_stream.getvalue(), out.getvalue(), error)


def typedef_lines(c_text: str):
    return [line for line in c_text.splitlines() if line.startswith("typedef ")]


def define_lines(c_text: str):
    return [line for line in c_text.splitlines() if line.startswith("#define c_")]


def parameter_lines(f_text: str):
    return [line.strip() for line in f_text.splitlines() if line.strip().startswith("INTEGER, PARAMETER ::")]


def parameters(f_text: str) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for line in parameter_lines(f_text):
        name, value = line.split("::", 1)[1].split("=")
        out[name.strip()] = int(value)
    return out


def typedefs(c_text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in typedef_lines(c_text):
        _, symbol, c_name = line.rstrip(";").split()
        out[c_name] = symbol
    return out
