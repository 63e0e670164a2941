"""
Generation driver: probe, resolve, emit, finalize.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from kindmatch.catalog import (
    CATALOG,
    CatalogEntry,
    DerivedConstant,
    KindSeries,
    SemanticTag,
    TagBinding,
    bind_tag,
    required_width,
)
from kindmatch.emitter import DualFileEmitter, EmissionRecord
from kindmatch.errors import UnresolvableWidthError
from kindmatch.fallback import WidthSlot, new_slots, resolve_family
from kindmatch.platform import PlatformConfig
from kindmatch.probe import (
    EXTENDED_FLOAT_WIDTH,
    FLOAT_GROUPS,
    INTEGER_GROUPS,
    CandidateType,
    SymbolGroup,
    TypeFamily,
    discover,
    primary_group,
)


class GenerationState(str, Enum):
    INIT = "init"
    PROBE_INTEGERS = "probe-integers"
    PROBE_FLOATS = "probe-floats"
    RESOLVE_FALLBACKS = "resolve-fallbacks"
    EMIT_ALL = "emit-all"
    FINALIZE = "finalize"
    SUCCESS = "success"
    FAILED = "failed"


_STATE_ORDER: Tuple[GenerationState, ...] = (
    GenerationState.INIT,
    GenerationState.PROBE_INTEGERS,
    GenerationState.PROBE_FLOATS,
    GenerationState.RESOLVE_FALLBACKS,
    GenerationState.EMIT_ALL,
    GenerationState.FINALIZE,
    GenerationState.SUCCESS,
)

_FAILABLE = (GenerationState.RESOLVE_FALLBACKS, GenerationState.EMIT_ALL)

_GROUPS_BY_FAMILY: Dict[TypeFamily, Tuple[SymbolGroup, ...]] = {
    TypeFamily.INTEGER: INTEGER_GROUPS,
    TypeFamily.FLOAT: FLOAT_GROUPS,
}


@dataclass
class GenerationResult:
    platform: str
    state: GenerationState
    integer_slots: List[WidthSlot] = field(default_factory=list)
    float_slots: List[WidthSlot] = field(default_factory=list)
    definitions: Dict[Tuple[str, int], CandidateType] = field(default_factory=dict)
    bindings: Dict[str, TagBinding] = field(default_factory=dict)
    advisories: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is GenerationState.SUCCESS


class GenerationDriver:
    """Runs one generation pass for one platform into one emitter.

    A driver is single use; `run` raises `UnresolvableWidthError` when a
    family or a tag cannot be bound, leaving the driver in the FAILED state.
    """

    def __init__(
        self,
        platform: PlatformConfig,
        emitter: DualFileEmitter,
        *,
        out: Optional[TextIO] = None,
        catalog: Sequence[CatalogEntry] = CATALOG,
    ) -> None:
        self.platform = platform
        self.emitter = emitter
        self.catalog = tuple(catalog)
        self.state = GenerationState.INIT
        self._out = out
        self.slots: Dict[TypeFamily, List[WidthSlot]] = {}
        self.definitions: Dict[Tuple[str, int], CandidateType] = {}
        self.bindings: Dict[str, TagBinding] = {}
        self.advisories: List[str] = []
        self.error: Optional[str] = None

    def _advance(self, target: GenerationState) -> None:
        if target is GenerationState.FAILED:
            if self.state not in _FAILABLE:
                raise RuntimeError(f"cannot fail from state {self.state.value}")
        elif self.state is GenerationState.FAILED or (
            _STATE_ORDER.index(target) != _STATE_ORDER.index(self.state) + 1
        ):
            raise RuntimeError(f"invalid transition {self.state.value} -> {target.value}")
        self.state = target

    def _advise(self, lines: Sequence[str]) -> None:
        for line in lines:
            self.advisories.append(line)
            print(line, file=self._out)

    def run(self) -> GenerationResult:
        if self.state is not GenerationState.INIT:
            raise RuntimeError("a GenerationDriver runs only once")
        with self.emitter:
            self._advance(GenerationState.PROBE_INTEGERS)
            self._probe(TypeFamily.INTEGER)
            self._advance(GenerationState.PROBE_FLOATS)
            self._probe(TypeFamily.FLOAT)
            try:
                self._advance(GenerationState.RESOLVE_FALLBACKS)
                for family in (TypeFamily.INTEGER, TypeFamily.FLOAT):
                    resolve_family(family, self.slots[family])
                self._advance(GenerationState.EMIT_ALL)
                self._emit_all()
            except UnresolvableWidthError as exc:
                self.error = str(exc)
                self._advance(GenerationState.FAILED)
                raise
            self._advance(GenerationState.FINALIZE)
            self.emitter.finalize()
        self._advance(GenerationState.SUCCESS)
        return self.result()

    def result(self) -> GenerationResult:
        return GenerationResult(
            platform=self.platform.name,
            state=self.state,
            integer_slots=list(self.slots.get(TypeFamily.INTEGER, [])),
            float_slots=list(self.slots.get(TypeFamily.FLOAT, [])),
            definitions=dict(self.definitions),
            bindings=dict(self.bindings),
            advisories=list(self.advisories),
            error=self.error,
        )

    def _probe(self, family: TypeFamily) -> None:
        slots = new_slots(family, self.platform.declared_kinds(family))
        declared = [s.requested_width for s in slots if s.declared_kind is not None]
        for group in _GROUPS_BY_FAMILY[family]:
            for width, candidate in discover(group, declared, self.platform.c_types).items():
                self.definitions[(group.prefix, width)] = candidate

        primary = primary_group(family)
        for slot in slots:
            candidate = self.definitions.get((primary.prefix, slot.requested_width))
            if candidate is not None:
                slot.bind_direct(candidate)
            elif (
                family is TypeFamily.FLOAT
                and slot.requested_width == EXTENDED_FLOAT_WIDTH
                and slot.declared_kind is not None
            ):
                slot.disabled = True
                self._advise(
                    [
                        f"warning: Fortran REAL is {EXTENDED_FLOAT_WIDTH} bytes, "
                        "no corresponding C floating type",
                        f"         Disabling Fortran {EXTENDED_FLOAT_WIDTH} byte REALs",
                    ]
                )
        self.slots[family] = slots

    def _all_slots(self) -> List[WidthSlot]:
        return self.slots[TypeFamily.INTEGER] + self.slots[TypeFamily.FLOAT]

    def _emit_definitions(self) -> None:
        for slot in self._all_slots():
            if slot.declared_kind is None:
                continue
            for group in _GROUPS_BY_FAMILY[slot.family]:
                candidate = self.definitions.get((group.prefix, slot.requested_width))
                if candidate is not None:
                    self.emitter.define(group.symbol(slot.requested_width), candidate.name)
        self.emitter.separate()

    def _emit_tag(self, tag: SemanticTag) -> None:
        binding = bind_tag(
            tag,
            required_width(tag, self.platform),
            self._all_slots(),
            self.definitions,
        )
        self.bindings[tag.name] = binding
        self.emitter.emit_both(
            EmissionRecord(
                name=tag.name,
                c_name=tag.c_name,
                symbol=binding.symbol,
                native_type=binding.native_type,
                width=binding.width,
                kind=binding.kind,
            )
        )

    def _emit_series(self, series: KindSeries) -> None:
        primary = primary_group(series.family)
        for slot in self.slots[series.family]:
            if slot.bound_type is None or slot.resolved_width is None or slot.resolved_kind is None:
                raise UnresolvableWidthError(
                    f"{series.name(slot.requested_width)}: width {slot.requested_width} was never resolved"
                )
            self.emitter.emit_both(
                EmissionRecord(
                    name=series.name(slot.requested_width),
                    c_name=series.c_name(slot.requested_width),
                    symbol=primary.symbol(slot.resolved_width),
                    native_type=slot.bound_type.name,
                    width=slot.resolved_width,
                    kind=slot.resolved_kind,
                )
            )

    def _emit_constant(self, constant: DerivedConstant) -> None:
        base = self.bindings.get(constant.base_tag)
        if base is None:
            raise UnresolvableWidthError(
                f"{constant.name}: {constant.base_tag} must be bound before it"
            )
        self.emitter.parameter(constant.name, base.required_width + constant.offset)

    def _emit_all(self) -> None:
        self._emit_definitions()
        for entry in self.catalog:
            if isinstance(entry, SemanticTag):
                self._emit_tag(entry)
            elif isinstance(entry, KindSeries):
                self._emit_series(entry)
            elif isinstance(entry, DerivedConstant):
                self._emit_constant(entry)
            else:
                raise TypeError(f"unsupported catalog entry: {entry!r}")


def generate(
    platform: PlatformConfig, out_dir: Path, *, out: Optional[TextIO] = None
) -> GenerationResult:
    emitter = DualFileEmitter.open(out_dir, platform.outputs)
    return GenerationDriver(platform, emitter, out=out).run()
