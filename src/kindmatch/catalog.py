"""
The semantic tag catalog and the tag binding rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple, Union

from kindmatch.errors import UnresolvableWidthError
from kindmatch.fallback import WidthSlot
from kindmatch.platform import PlatformConfig
from kindmatch.probe import GROUPS_BY_PREFIX, CandidateType, SymbolGroup, TypeFamily

SIZEOF = "sizeof"
DEFAULT = "default"


@dataclass(frozen=True)
class SemanticTag:
    name: str
    c_name: str
    group: str
    source: str
    key: str
    exact: bool = False
    extended: bool = False


@dataclass(frozen=True)
class KindSeries:
    """One kind constant per canonical width of a family."""

    family: TypeFamily
    name_pattern: str
    c_name_pattern: str

    def name(self, width: int) -> str:
        return self.name_pattern.format(width=width)

    def c_name(self, width: int) -> str:
        return self.c_name_pattern.format(width=width)


@dataclass(frozen=True)
class DerivedConstant:
    name: str
    base_tag: str
    offset: int


CatalogEntry = Union[SemanticTag, KindSeries, DerivedConstant]

CATALOG: Tuple[CatalogEntry, ...] = (
    SemanticTag("HADDR_T", "haddr_t_f", "int", SIZEOF, "haddr_t"),
    SemanticTag("HSIZE_T", "hsize_t_f", "hsize_t", SIZEOF, "hsize_t"),
    SemanticTag("HSSIZE_T", "hssize_t_f", "int", SIZEOF, "hssize_t"),
    SemanticTag("OFF_T", "off_t_f", "int", SIZEOF, "off_t"),
    SemanticTag("SIZE_T", "size_t_f", "size_t", SIZEOF, "size_t"),
    SemanticTag("Fortran_INTEGER", "int_f", "int", DEFAULT, "integer", exact=True),
    KindSeries(TypeFamily.INTEGER, "Fortran_INTEGER_{width}", "int_{width}_f"),
    KindSeries(TypeFamily.FLOAT, "Fortran_REAL_{width}", "real_{width}_f"),
    SemanticTag("HID_T", "hid_t_f", "int", SIZEOF, "hid_t"),
    SemanticTag("Fortran_REAL", "real_f", "float", DEFAULT, "real", exact=True, extended=True),
    SemanticTag("Fortran_DOUBLE", "double_f", "float", DEFAULT, "double", exact=True, extended=True),
    # C side: H5R_DSET_REG_REF_BUF_SIZE is sizeof(haddr_t) + 4.
    DerivedConstant("H5R_DSET_REG_REF_BUF_SIZE_F", "HADDR_T", 4),
)


@dataclass(frozen=True)
class TagBinding:
    tag: SemanticTag
    required_width: int
    width: int
    kind: int
    symbol: str
    native_type: str
    narrowed: bool = False


def tag_group(tag: SemanticTag) -> SymbolGroup:
    group = GROUPS_BY_PREFIX.get(tag.group)
    if group is None:
        raise UnresolvableWidthError(f"{tag.name}: unknown symbol group {tag.group!r}")
    return group


def required_width(tag: SemanticTag, platform: PlatformConfig) -> int:
    if tag.source == SIZEOF:
        size = platform.library_sizes.get(tag.key)
        if size is None:
            raise UnresolvableWidthError(f"{tag.name}: no size given for {tag.key}")
        return size
    if tag.source == DEFAULT:
        default = getattr(platform, f"default_{tag.key}", None)
        if default is None:
            raise UnresolvableWidthError(f"{tag.name}: no Fortran default {tag.key} kind")
        return default.width
    raise UnresolvableWidthError(f"{tag.name}: unknown width source {tag.source!r}")


def _pick(tag: SemanticTag, min_width: int, usable: Sequence[WidthSlot]) -> Tuple[Optional[WidthSlot], bool]:
    wide = [s for s in usable if s.requested_width >= min_width]
    if tag.exact:
        wide = [s for s in wide if s.requested_width == min_width]
    if wide:
        return wide[0], False
    if tag.extended:
        narrow = [s for s in usable if s.requested_width < min_width]
        if narrow:
            return narrow[-1], True
    return None, False


def bind_tag(
    tag: SemanticTag,
    min_width: int,
    slots: Sequence[WidthSlot],
    defined: Mapping[Tuple[str, int], CandidateType],
) -> TagBinding:
    """Bind `tag` to the smallest directly bound slot that holds `min_width`.

    Only slots whose group symbol is defined at that width are considered.
    Exact tags need an equal width; extended tags narrow to the largest
    smaller slot when nothing large enough exists.
    """
    group = tag_group(tag)
    family_slots = [s for s in slots if s.family is group.family]
    if not family_slots:
        raise UnresolvableWidthError(f"{tag.name}: no {group.family.value} slots to bind to")

    usable = sorted(
        (
            s
            for s in family_slots
            if s.is_direct and not s.disabled and (group.prefix, s.requested_width) in defined
        ),
        key=lambda s: s.requested_width,
    )
    slot, narrowed = _pick(tag, min_width, usable)
    if slot is None:
        rule = "==" if tag.exact else ">="
        available = ", ".join(str(s.requested_width) for s in usable) or "none"
        raise UnresolvableWidthError(
            f"{tag.name}: no Fortran {group.family.value} width {rule} {min_width} "
            f"with a c_{group.prefix}_N definition "
            f"(available: {available})"
        )

    width = slot.requested_width
    if slot.resolved_kind is None:
        raise UnresolvableWidthError(f"{tag.name}: width {width} has no resolved kind")
    return TagBinding(
        tag=tag,
        required_width=min_width,
        width=width,
        kind=slot.resolved_kind,
        symbol=group.symbol(width),
        native_type=defined[(group.prefix, width)].name,
        narrowed=narrowed,
    )
