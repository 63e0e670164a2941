import unittest

from support import LP64_LIBRARY_SIZES, make_platform, without

from kindmatch.catalog import CATALOG, DerivedConstant, KindSeries, SemanticTag, bind_tag, required_width
from kindmatch.errors import UnresolvableWidthError
from kindmatch.fallback import new_slots, resolve_family
from kindmatch.probe import FLOAT_GROUP, INT_GROUP, SIZE_T_GROUP, CandidateType, TypeFamily

INT_NAMES = {1: "char", 2: "short", 4: "int", 8: "long long"}
FLOAT_NAMES = {4: "float", 8: "double", 16: "long double"}


def _tag(name):
    for entry in CATALOG:
        if isinstance(entry, SemanticTag) and entry.name == name:
            return entry
    raise KeyError(name)


class _Fixture:
    """Directly bound slots for the given widths, all kinds equal to width."""

    def __init__(self, int_widths=(1, 2, 4, 8), float_widths=(4, 8, 16), size_t_widths=(8,)):
        self.defined = {}
        self.slots = []
        for family, names, widths in (
            (TypeFamily.INTEGER, INT_NAMES, int_widths),
            (TypeFamily.FLOAT, FLOAT_NAMES, float_widths),
        ):
            slots = new_slots(family, {w: w for w in names})
            group = INT_GROUP if family is TypeFamily.INTEGER else FLOAT_GROUP
            for slot in slots:
                if slot.requested_width in widths:
                    candidate = CandidateType(names[slot.requested_width], family, slot.requested_width)
                    self.defined[(group.prefix, slot.requested_width)] = candidate
                    slot.bind_direct(candidate)
            if any(s.is_direct for s in slots):
                resolve_family(family, slots)
            self.slots.extend(slots)
        for width in size_t_widths:
            self.defined[(SIZE_T_GROUP.prefix, width)] = CandidateType("size_t", TypeFamily.INTEGER, width)

    def bind(self, name, min_width):
        return bind_tag(_tag(name), min_width, self.slots, self.defined)


class TestCatalogOrder(unittest.TestCase):
    def test_emission_order(self):
        names = []
        for entry in CATALOG:
            if isinstance(entry, KindSeries):
                names.append(entry.name_pattern)
            else:
                names.append(entry.name)
        self.assertEqual(
            names,
            [
                "HADDR_T",
                "HSIZE_T",
                "HSSIZE_T",
                "OFF_T",
                "SIZE_T",
                "Fortran_INTEGER",
                "Fortran_INTEGER_{width}",
                "Fortran_REAL_{width}",
                "HID_T",
                "Fortran_REAL",
                "Fortran_DOUBLE",
                "H5R_DSET_REG_REF_BUF_SIZE_F",
            ],
        )
        self.assertIsInstance(CATALOG[-1], DerivedConstant)

    def test_series_names(self):
        series = [e for e in CATALOG if isinstance(e, KindSeries)]
        self.assertEqual(series[0].name(2), "Fortran_INTEGER_2")
        self.assertEqual(series[0].c_name(2), "int_2_f")
        self.assertEqual(series[1].name(16), "Fortran_REAL_16")
        self.assertEqual(series[1].c_name(16), "real_16_f")


class TestBindTag(unittest.TestCase):
    def test_exact_width_binds(self):
        binding = _Fixture().bind("HADDR_T", 8)
        self.assertEqual((binding.width, binding.kind), (8, 8))
        self.assertEqual(binding.symbol, "c_int_8")
        self.assertEqual(binding.native_type, "long long")
        self.assertFalse(binding.narrowed)

    def test_smallest_sufficient_width(self):
        binding = _Fixture(int_widths=(1, 8)).bind("HID_T", 4)
        self.assertEqual(binding.width, 8)
        self.assertEqual(binding.required_width, 4)

    def test_fallback_slots_are_not_candidates(self):
        # Slot 4 resolves to 8 through fallback; HID_T still binds at width 8.
        fixture = _Fixture(int_widths=(1, 2, 8))
        self.assertTrue(fixture.slots[2].is_fallback)
        binding = fixture.bind("HID_T", 4)
        self.assertEqual(binding.symbol, "c_int_8")

    def test_no_width_large_enough(self):
        with self.assertRaises(UnresolvableWidthError) as ctx:
            _Fixture(int_widths=(1, 2, 4)).bind("HADDR_T", 8)
        self.assertIn("HADDR_T", str(ctx.exception))
        self.assertIn("available: 1, 2, 4", str(ctx.exception))

    def test_group_symbol_must_be_defined(self):
        binding = _Fixture().bind("SIZE_T", 8)
        self.assertEqual((binding.symbol, binding.native_type), ("c_size_t_8", "size_t"))

        with self.assertRaises(UnresolvableWidthError) as ctx:
            _Fixture(size_t_widths=(4,)).bind("SIZE_T", 8)
        self.assertIn("c_size_t_N", str(ctx.exception))

    def test_exact_tag_needs_equal_width(self):
        binding = _Fixture().bind("Fortran_INTEGER", 4)
        self.assertEqual(binding.symbol, "c_int_4")
        with self.assertRaises(UnresolvableWidthError):
            _Fixture(int_widths=(8,)).bind("Fortran_INTEGER", 4)

    def test_extended_tag_narrows(self):
        binding = _Fixture(float_widths=(4, 8)).bind("Fortran_DOUBLE", 16)
        self.assertEqual((binding.width, binding.symbol), (8, "c_float_8"))
        self.assertTrue(binding.narrowed)

        binding = _Fixture(float_widths=(4,)).bind("Fortran_DOUBLE", 16)
        self.assertEqual(binding.width, 4)

        binding = _Fixture().bind("Fortran_DOUBLE", 16)
        self.assertEqual(binding.width, 16)
        self.assertFalse(binding.narrowed)

    def test_disabled_slot_is_never_bound(self):
        fixture = _Fixture()
        fixture.slots[-1].disabled = True
        binding = fixture.bind("Fortran_DOUBLE", 16)
        self.assertEqual((binding.width, binding.symbol), (8, "c_float_8"))
        self.assertTrue(binding.narrowed)

    def test_direct_slot_without_kind(self):
        fixture = _Fixture()
        fixture.slots[3].resolved_kind = None
        with self.assertRaises(UnresolvableWidthError) as ctx:
            fixture.bind("HADDR_T", 8)
        self.assertIn("no resolved kind", str(ctx.exception))

    def test_family_without_slots(self):
        fixture = _Fixture()
        fixture.slots = [s for s in fixture.slots if s.family is TypeFamily.INTEGER]
        with self.assertRaises(UnresolvableWidthError):
            fixture.bind("Fortran_REAL", 4)

    def test_unknown_group(self):
        tag = SemanticTag("ODD_T", "odd_t_f", "bogus", "sizeof", "odd_t")
        with self.assertRaises(UnresolvableWidthError):
            bind_tag(tag, 4, _Fixture().slots, {})


class TestRequiredWidth(unittest.TestCase):
    def test_sources(self):
        platform = make_platform(library_sizes=dict(LP64_LIBRARY_SIZES, hid_t=4), default_double=16)
        self.assertEqual(required_width(_tag("HID_T"), platform), 4)
        self.assertEqual(required_width(_tag("Fortran_INTEGER"), platform), 4)
        self.assertEqual(required_width(_tag("Fortran_DOUBLE"), platform), 16)

    def test_missing_library_size(self):
        platform = make_platform(library_sizes=without(LP64_LIBRARY_SIZES, ["off_t"]))
        with self.assertRaises(UnresolvableWidthError) as ctx:
            required_width(_tag("OFF_T"), platform)
        self.assertIn("no size given for off_t", str(ctx.exception))

    def test_unknown_source(self):
        tag = SemanticTag("ODD_T", "odd_t_f", "int", "guess", "odd_t")
        with self.assertRaises(UnresolvableWidthError):
            required_width(tag, make_platform())


if __name__ == "__main__":
    unittest.main()
