"""
Native type candidates and the width probe.

Each symbol group lists its C candidates in preference order; the probe
returns the first candidate whose size matches the requested width.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple


class TypeFamily(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"


CANONICAL_WIDTHS: Dict[TypeFamily, Tuple[int, ...]] = {
    TypeFamily.INTEGER: (1, 2, 4, 8),
    TypeFamily.FLOAT: (4, 8, 16),
}

EXTENDED_FLOAT_WIDTH = 16


@dataclass(frozen=True)
class CandidateType:
    name: str
    family: TypeFamily
    byte_width: int


@dataclass(frozen=True)
class SymbolGroup:
    prefix: str
    family: TypeFamily
    candidates: Tuple[str, ...]

    def symbol(self, width: int) -> str:
        return f"c_{self.prefix}_{width}"


INT_GROUP = SymbolGroup("int", TypeFamily.INTEGER, ("long long", "long", "int", "short", "char"))
SIZE_T_GROUP = SymbolGroup("size_t", TypeFamily.INTEGER, ("size_t",))
HSIZE_T_GROUP = SymbolGroup("hsize_t", TypeFamily.INTEGER, ("hsize_t",))
FLOAT_GROUP = SymbolGroup("float", TypeFamily.FLOAT, ("long double", "double", "float"))

# Definition order within one integer width.
INTEGER_GROUPS: Tuple[SymbolGroup, ...] = (INT_GROUP, SIZE_T_GROUP, HSIZE_T_GROUP)
FLOAT_GROUPS: Tuple[SymbolGroup, ...] = (FLOAT_GROUP,)

GROUPS_BY_PREFIX: Dict[str, SymbolGroup] = {
    g.prefix: g for g in INTEGER_GROUPS + FLOAT_GROUPS
}

KNOWN_C_TYPES: Tuple[str, ...] = tuple(
    dict.fromkeys(name for g in INTEGER_GROUPS + FLOAT_GROUPS for name in g.candidates)
)


def primary_group(family: TypeFamily) -> SymbolGroup:
    return INT_GROUP if family is TypeFamily.INTEGER else FLOAT_GROUP


def probe(group: SymbolGroup, width: int, c_types: Mapping[str, int]) -> Optional[CandidateType]:
    """Return the first candidate of `group` whose sizeof equals `width`.

    `c_types` maps every C type that exists on the target to its size;
    types absent from it do not exist there.
    """
    if width not in CANONICAL_WIDTHS[group.family]:
        raise ValueError(f"{width} is not a canonical {group.family.value} width")
    for name in group.candidates:
        if c_types.get(name) == width:
            return CandidateType(name, group.family, width)
    return None


def discover(
    group: SymbolGroup, widths: Iterable[int], c_types: Mapping[str, int]
) -> Dict[int, CandidateType]:
    found: Dict[int, CandidateType] = {}
    for width in widths:
        candidate = probe(group, width, c_types)
        if candidate is not None:
            found[width] = candidate
    return found
