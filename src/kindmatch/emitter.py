"""
Paired writer for the C header and the Fortran module.

Both streams are append-only and written in call order, so the n-th
typedef in the header always matches the n-th parameter in the module.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, TextIO, Union

from kindmatch.errors import EmitterClosedError
from kindmatch.platform import OutputLayout

SOURCE_NAME = "kindmatch"
F_INDENT = " " * 8


@dataclass(frozen=True)
class EmissionRecord:
    name: str
    c_name: str
    symbol: str
    native_type: str
    width: int
    kind: int


def include_guard(header_name: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9_]", "_", Path(header_name).stem)
    return f"_{stem}_H"


def _c_prologue(layout: OutputLayout) -> List[str]:
    guard = include_guard(layout.c_header)
    out: List[str] = []
    out.append("/* GENERATED FILE - DO NOT EDIT.")
    if layout.platform_name:
        out.append(f" * Platform: {layout.platform_name}")
    out.append(f" * Source: {SOURCE_NAME}")
    out.append(f" * Matches {layout.fortran_module}; regenerate both files together.")
    out.append(" */")
    out.append("")
    out.append(f"#ifndef {guard}")
    out.append(f"#define {guard}")
    out.append("")
    for inc in layout.c_includes:
        out.append(f'#include "{inc}"')
    if layout.c_includes:
        out.append("")
    return out


def _c_epilogue(layout: OutputLayout) -> List[str]:
    return ["", f"#endif /* {include_guard(layout.c_header)} */"]


def _f_prologue(layout: OutputLayout) -> List[str]:
    out: List[str] = []
    out.append("! GENERATED FILE - DO NOT EDIT.")
    if layout.platform_name:
        out.append(f"! Platform: {layout.platform_name}")
    out.append(f"! Source: {SOURCE_NAME}")
    out.append(f"! Matches {layout.c_header}; regenerate both files together.")
    out.append("!")
    out.append(f"       MODULE {layout.module_name}")
    out.append("         !")
    out.append("         !  Kind parameters matched to C types")
    out.append("         !")
    return out


def _f_epilogue(layout: OutputLayout) -> List[str]:
    return [
        "",
        f"{F_INDENT}INTEGER(SIZE_T), PARAMETER :: OBJECT_NAMELEN_DEFAULT_F = -1",
        "",
        f"{F_INDENT}END MODULE {layout.module_name}",
    ]


class DualFileEmitter:
    def __init__(
        self,
        c_stream: TextIO,
        f_stream: TextIO,
        layout: OutputLayout,
        *,
        owns_streams: bool = False,
    ) -> None:
        self.layout = layout
        self._c = c_stream
        self._f = f_stream
        self._owns_streams = owns_streams
        self._closed = False
        self.finalized = False
        self.records_written = 0
        self._write(self._c, _c_prologue(layout))
        self._write(self._f, _f_prologue(layout))

    @classmethod
    def open(cls, out_dir: Path, layout: OutputLayout) -> "DualFileEmitter":
        out_dir.mkdir(parents=True, exist_ok=True)
        c_stream = (out_dir / layout.c_header).open("w", encoding="utf-8", newline="\n")
        try:
            f_stream = (out_dir / layout.fortran_module).open("w", encoding="utf-8", newline="\n")
        except OSError:
            c_stream.close()
            raise
        return cls(c_stream, f_stream, layout, owns_streams=True)

    @property
    def closed(self) -> bool:
        return self._closed

    def _write(self, stream: TextIO, lines: List[str]) -> None:
        if self._closed:
            raise EmitterClosedError("write after the output files were closed")
        for line in lines:
            stream.write(line + "\n")

    def define(self, symbol: str, native_type: str) -> None:
        self._write(self._c, [f"#define {symbol} {native_type}"])

    def separate(self) -> None:
        self._write(self._c, [""])

    def emit_both(self, record: EmissionRecord) -> None:
        self._write(self._f, [f"{F_INDENT}INTEGER, PARAMETER :: {record.name} = {record.kind}"])
        self._write(self._c, [f"typedef {record.symbol} {record.c_name};"])
        self.records_written += 1

    def parameter(self, name: str, value: Union[int, str], type_spec: str = "INTEGER") -> None:
        self._write(self._f, [f"{F_INDENT}{type_spec}, PARAMETER :: {name} = {value}"])

    def finalize(self) -> None:
        self._write(self._c, _c_epilogue(self.layout))
        self._write(self._f, _f_epilogue(self.layout))
        self.finalized = True
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for stream in (self._c, self._f):
            if self._owns_streams:
                stream.close()
            else:
                stream.flush()

    def __enter__(self) -> "DualFileEmitter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
