"""
Width slots and fallback resolution.

A canonical width that the Fortran runtime does not declare, or that has no
native C type, borrows the binding of the nearest directly bound width:
next larger first, next smaller only when nothing larger exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from kindmatch.errors import UnresolvableWidthError
from kindmatch.probe import CANONICAL_WIDTHS, CandidateType, TypeFamily

UP = 1
DOWN = -1


@dataclass
class WidthSlot:
    family: TypeFamily
    requested_width: int
    declared_kind: Optional[int] = None
    bound_type: Optional[CandidateType] = None
    resolved_width: Optional[int] = None
    resolved_kind: Optional[int] = None
    is_fallback: bool = False
    disabled: bool = False

    @property
    def is_direct(self) -> bool:
        return self.bound_type is not None and not self.is_fallback

    @property
    def is_bound(self) -> bool:
        return self.bound_type is not None

    def bind_direct(self, candidate: CandidateType) -> None:
        if self.declared_kind is None:
            raise ValueError(f"width {self.requested_width} has no declared kind")
        self.bound_type = candidate
        self.resolved_width = self.requested_width
        self.resolved_kind = self.declared_kind
        self.is_fallback = False

    def bind_fallback(self, substitute: "WidthSlot") -> None:
        self.bound_type = substitute.bound_type
        self.resolved_width = substitute.resolved_width
        self.resolved_kind = substitute.resolved_kind
        self.is_fallback = True


def new_slots(family: TypeFamily, declared: Dict[int, int]) -> List[WidthSlot]:
    return [
        WidthSlot(family=family, requested_width=w, declared_kind=declared.get(w))
        for w in CANONICAL_WIDTHS[family]
    ]


def nearest_width(widths: Sequence[int], target: int, direction: int) -> Optional[int]:
    """Nearest width strictly above (UP) or below (DOWN) `target`, or None."""
    if direction == UP:
        ordered = sorted(w for w in widths if w > target)
    elif direction == DOWN:
        ordered = sorted((w for w in widths if w < target), reverse=True)
    else:
        raise ValueError(f"bad scan direction: {direction!r}")
    return ordered[0] if ordered else None


def resolve_family(family: TypeFamily, slots: Sequence[WidthSlot]) -> List[WidthSlot]:
    direct = {s.requested_width: s for s in slots if s.is_direct and not s.disabled}
    if not direct:
        widths = ", ".join(str(s.requested_width) for s in slots)
        raise UnresolvableWidthError(
            f"no native C {family.value} type matches any Fortran {family.value} width ({widths})"
        )

    for slot in slots:
        if slot.is_direct:
            continue
        width = nearest_width(list(direct), slot.requested_width, UP)
        if width is None:
            width = nearest_width(list(direct), slot.requested_width, DOWN)
        if width is None:
            raise UnresolvableWidthError(
                f"no substitute for Fortran {family.value} width {slot.requested_width}"
            )
        slot.bind_fallback(direct[width])
    return list(slots)
