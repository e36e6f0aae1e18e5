import math
import unittest

from hwnum import (
    FLOAT16,
    FLOAT32,
    FLOAT64,
    FP8_E4M3,
    FP8_E5M2,
    FixedFormat,
    FixedPointValue,
    FloatFormat,
    FloatingPointConstants,
    FloatingPointPopulator,
    InfinityNotSupportedError,
    RoundingMode,
    WidthMismatchError,
    bits_of,
    format_bits,
    parse_bits,
)

E4M4 = FloatFormat(exponent_bits=4, mantissa_bits=4)
E4M4_EXPLICIT = FloatFormat(exponent_bits=4, mantissa_bits=4, explicit_jbit=True)


class TestPopulate(unittest.TestCase):
    """
    Unit tests for bit-level construction.
    """

    def setUp(self):
        self.pop = FloatingPointPopulator(E4M4)

    def test_populate(self):
        """Fields are concatenated sign, exponent, mantissa."""
        fp = self.pop.populate(parse_bits("1"), parse_bits("0111"), parse_bits("1000"))
        self.assertEqual(format_bits(fp.value), "101111000")
        self.assertEqual(str(fp), "1 0111 1000")
        self.assertEqual(fp.to_double(), -1.5)

    def test_width_mismatch(self):
        """Fields of the wrong width are rejected."""
        with self.assertRaises(WidthMismatchError):
            self.pop.populate(parse_bits("0"), parse_bits("111"), parse_bits("1000"))
        with self.assertRaises(WidthMismatchError):
            self.pop.of_logic_value(parse_bits("0000"))
        with self.assertRaises(WidthMismatchError):
            self.pop.of_binary_strings("0", "00000", "0000")

    def test_of_ints(self):
        """Integer fields must fit their widths."""
        fp = self.pop.of_ints(8, 1)
        self.assertEqual(str(fp), "0 1000 0001")
        self.assertEqual(fp.to_string(integer=True), "(0 8 1)")
        self.assertEqual(self.pop.of_ints(7, 0, sign=True).to_double(), -1.0)
        with self.assertRaises(WidthMismatchError):
            self.pop.of_ints(16, 0)
        with self.assertRaises(WidthMismatchError):
            self.pop.of_ints(0, 16)

    def test_of_spaced_binary_string(self):
        """The diagnostic form parses back to the same value."""
        fp = FloatingPointPopulator(FLOAT32).of_spaced_binary_string("0 10000001 01000100000000000000000")
        self.assertEqual(fp.to_double(), 5.0625)
        self.assertEqual(str(fp), "0 10000001 01000100000000000000000")
        with self.assertRaises(ValueError):
            self.pop.of_spaced_binary_string("0 1000")

    def test_of_string_radix(self):
        """Whole patterns can be written in any radix."""
        self.assertEqual(FloatingPointPopulator(FLOAT16).of_string("3c00", radix=16).to_double(), 1.0)
        self.assertEqual(self.pop.of_string("0 0111 0000").to_double(), 1.0)
        self.assertEqual(self.pop.of_string("001110000").to_double(), 1.0)
        with self.assertRaises(WidthMismatchError):
            self.pop.of_string("fff", radix=16)


class TestConstants(unittest.TestCase):
    """
    Unit tests for the named constant catalogue.
    """

    def test_implicit_constants(self):
        """Every constant of a small implicit format has its documented pattern."""
        pop = FloatingPointPopulator(E4M4)
        test_cases = [
            (FloatingPointConstants.POSITIVE_ZERO, "0 0000 0000", 0.0),
            (FloatingPointConstants.NEGATIVE_ZERO, "1 0000 0000", -0.0),
            (FloatingPointConstants.ONE, "0 0111 0000", 1.0),
            (FloatingPointConstants.POSITIVE_INFINITY, "0 1111 0000", math.inf),
            (FloatingPointConstants.NEGATIVE_INFINITY, "1 1111 0000", -math.inf),
            (FloatingPointConstants.SMALLEST_POSITIVE_SUBNORMAL, "0 0000 0001", 2.0**-10),
            (FloatingPointConstants.LARGEST_POSITIVE_SUBNORMAL, "0 0000 1111", 15 * 2.0**-10),
            (FloatingPointConstants.SMALLEST_POSITIVE_NORMAL, "0 0001 0000", 2.0**-6),
            (FloatingPointConstants.LARGEST_NORMAL, "0 1110 1111", 248.0),
            (FloatingPointConstants.LARGEST_LESS_THAN_ONE, "0 0110 1111", 0.96875),
            (FloatingPointConstants.SMALLEST_LARGER_THAN_ONE, "0 0111 0001", 1.0625),
        ]
        for constant, pattern, value in test_cases:
            with self.subTest(constant=constant):
                fp = pop.of_constant(constant)
                self.assertEqual(str(fp), pattern)
                self.assertEqual(fp.to_double(), value)
        self.assertTrue(pop.nan.is_nan)
        self.assertEqual(str(pop.nan), "0 1111 0001")

    def test_explicit_constants(self):
        """Explicit formats carry the J-bit in the mantissa MSB."""
        pop = FloatingPointPopulator(E4M4_EXPLICIT)
        self.assertEqual(str(pop.one), "0 0111 1000")
        self.assertEqual(str(pop.of_constant(FloatingPointConstants.LARGEST_NORMAL)), "0 1110 1111")
        self.assertEqual(pop.of_constant(FloatingPointConstants.LARGEST_NORMAL).to_double(), 240.0)
        self.assertEqual(str(pop.of_constant(FloatingPointConstants.SMALLEST_POSITIVE_SUBNORMAL)), "0 0000 0001")
        self.assertEqual(str(pop.of_constant(FloatingPointConstants.SMALLEST_POSITIVE_NORMAL)), "0 0001 1000")
        self.assertEqual(str(pop.positive_infinity), "0 1111 0000")

    def test_ordering(self):
        """Constants are ordered as their names say."""
        pop = FloatingPointPopulator(FLOAT16)
        one = pop.one
        self.assertLess(pop.of_constant(FloatingPointConstants.LARGEST_LESS_THAN_ONE), one)
        self.assertGreater(pop.of_constant(FloatingPointConstants.SMALLEST_LARGER_THAN_ONE), one)
        self.assertLess(
            pop.of_constant(FloatingPointConstants.LARGEST_POSITIVE_SUBNORMAL),
            pop.of_constant(FloatingPointConstants.SMALLEST_POSITIVE_NORMAL),
        )
        self.assertEqual(pop.of_constant(FloatingPointConstants.LARGEST_NORMAL).to_double(), 65504.0)

    def test_no_infinity(self):
        """E4M3 has no Infinity encoding."""
        pop = FloatingPointPopulator(FP8_E4M3)
        with self.assertRaises(InfinityNotSupportedError):
            pop.of_constant(FloatingPointConstants.POSITIVE_INFINITY)
        with self.assertRaises(InfinityNotSupportedError):
            pop.negative_infinity
        self.assertEqual(str(pop.nan), "0 1111 111")
        self.assertEqual(str(pop.of_constant(FloatingPointConstants.LARGEST_NORMAL)), "0 1111 110")


class TestOfDouble(unittest.TestCase):
    """
    Unit tests for conversion from host doubles.
    """

    def test_round_trip_exhaustive(self):
        """Every non-NaN E4M4 pattern survives decode and re-encode."""
        pop = FloatingPointPopulator(E4M4)
        for payload in range(1 << E4M4.total_bits):
            fp = pop.of_logic_value(bits_of(payload, E4M4.total_bits))
            if fp.is_nan:
                continue
            with self.subTest(fp=str(fp)):
                self.assertEqual(pop.of_double(fp.to_double()).payload, payload)

    def test_round_trip_explicit(self):
        """Canonical explicit patterns survive decode and re-encode."""
        pop = FloatingPointPopulator(E4M4_EXPLICIT)
        for payload in range(1 << E4M4_EXPLICIT.total_bits):
            fp = pop.of_logic_value(bits_of(payload, E4M4_EXPLICIT.total_bits))
            if fp.is_nan or not fp.is_canonical:
                continue
            with self.subTest(fp=str(fp)):
                self.assertEqual(pop.of_double(fp.to_double()).payload, payload)

    def test_rounding_vectors(self):
        """Nearest-even rounding of wide patterns, including carry into the exponent."""
        wide = FloatingPointPopulator(FLOAT64)
        narrow = FloatingPointPopulator(E4M4)
        test_cases = [
            ("00001" + "0" * 46 + "1", "0 1000 0001"),  # above half
            ("000011" + "0" * 46, "0 1000 0001"),  # guard and round
            ("00011" + "0" * 47, "0 1000 0010"),  # tie, odd goes up
            ("00001" + "0" * 47, "0 1000 0000"),  # tie, even stays
            ("11111" + "0" * 47, "0 1001 0000"),  # mantissa overflow
        ]
        for mantissa, expected in test_cases:
            with self.subTest(mantissa=mantissa):
                fp64 = wide.of_binary_strings("0", "10000000000", mantissa)
                self.assertEqual(str(narrow.of_double(fp64.to_double())), expected)
                self.assertEqual(str(narrow.of_floating_point_value(fp64)), expected)

    def test_rounding_modes(self):
        """Every directed mode picks the documented neighbour."""
        pop = FloatingPointPopulator(E4M4)
        tie = 1 + 2**-5  # halfway between 1.0 and 1.0625
        above = 1 + 2**-5 + 2**-8
        test_cases = [
            (tie, RoundingMode.HALF_TO_EVEN, 1.0),
            (tie, RoundingMode.HALF_TO_INF, 1.0625),
            (tie, RoundingMode.FULL_TO_ZERO, 1.0),
            (tie, RoundingMode.FULL_CEIL, 1.0625),
            (above, RoundingMode.HALF_TO_EVEN, 1.0625),
            (above, RoundingMode.FULL_DOWN, 1.0),
            (-tie, RoundingMode.FULL_DOWN, -1.0625),
            (-tie, RoundingMode.FULL_CEIL, -1.0),
            (-tie, RoundingMode.HALF_CEIL, -1.0),
            (-tie, RoundingMode.HALF_DOWN, -1.0625),
        ]
        for value, mode, expected in test_cases:
            with self.subTest(value=value, mode=mode):
                self.assertEqual(pop.of_double(value, mode).to_double(), expected)

    def test_overflow(self):
        """Overflow goes to Infinity, or saturates when rounding towards zero."""
        pop = FloatingPointPopulator(E4M4)
        self.assertTrue(pop.of_double(257.0).is_infinity)
        self.assertTrue(pop.of_double(252.0).is_infinity)
        self.assertEqual(pop.of_double(251.0).to_double(), 248.0)
        self.assertEqual(pop.of_double(1000.0, RoundingMode.FULL_TO_ZERO).to_double(), 248.0)
        self.assertEqual(pop.of_double(1000.0, RoundingMode.FULL_DOWN).to_double(), 248.0)
        self.assertEqual(pop.of_double(-1000.0, RoundingMode.FULL_DOWN).to_double(), -math.inf)
        self.assertEqual(pop.of_double(-1000.0, RoundingMode.FULL_CEIL).to_double(), -248.0)

    def test_underflow(self):
        """Tiny values round to subnormals or signed zero."""
        pop = FloatingPointPopulator(E4M4)
        self.assertEqual(pop.of_double(2.0**-10).to_double(), 2.0**-10)
        self.assertEqual(pop.of_double(2.0**-11).to_double(), 0.0)
        self.assertEqual(pop.of_double(3 * 2.0**-12).to_double(), 2.0**-10)
        self.assertEqual(str(pop.of_double(-(2.0**-20))), "1 0000 0000")
        # subnormal carry into the smallest normal
        self.assertEqual(str(pop.of_double(31 * 2.0**-11)), "0 0001 0000")

    def test_special_inputs(self):
        """NaN, infinities and signed zeros map to their encodings."""
        pop = FloatingPointPopulator(E4M4)
        self.assertTrue(pop.of_double(math.nan).is_nan)
        self.assertEqual(str(pop.of_double(math.inf)), "0 1111 0000")
        self.assertEqual(str(pop.of_double(-math.inf)), "1 1111 0000")
        self.assertEqual(str(pop.of_double(-0.0)), "1 0000 0000")
        self.assertEqual(str(pop.of_double(0.0)), "0 0000 0000")

    def test_unrounded(self):
        """Truncating conversion differs from rounding only in the last place."""
        pop = FloatingPointPopulator(E4M4)
        self.assertTrue(pop.of_double_unrounded(557.0).is_infinity)
        self.assertEqual(pop.of_double_unrounded(1.0 + 2**-5 + 2**-6).to_double(), 1.0)
        self.assertEqual(pop.of_double(1.0 + 2**-5 + 2**-6).to_double(), 1.0625)
        fp32 = FloatingPointPopulator(FLOAT32)
        tiny = fp32.of_double(1.0 + 2.0**-149)
        self.assertEqual(fp32.of_double_unrounded(tiny.to_double()), tiny)
        for value in (0.1, 3.3, -7.77, 100.5):
            with self.subTest(value=value):
                rounded = pop.of_double(value)
                truncated = pop.of_double_unrounded(value)
                self.assertLessEqual(abs(truncated.to_double()), abs(value))
                self.assertTrue(rounded.within_rounding(truncated))


class TestPresets(unittest.TestCase):
    """
    Unit tests for the corner values of the 8-bit presets.
    """

    def test_e4m3_corners(self):
        """E4M3 reuses the all-ones exponent for normals."""
        pop = FloatingPointPopulator(FP8_E4M3)
        test_cases = [
            ("0 1111 110", 448.0),
            ("0 1111 000", 256.0),
            ("0 0001 000", 2.0**-6),
            ("0 0000 111", 0.875 * 2.0**-6),
            ("0 0000 001", 2.0**-9),
            ("1 1111 110", -448.0),
        ]
        for pattern, value in test_cases:
            with self.subTest(pattern=pattern):
                fp = pop.of_spaced_binary_string(pattern)
                self.assertEqual(fp.to_double(), value)
                self.assertEqual(pop.of_double(value), fp)
        self.assertTrue(pop.of_spaced_binary_string("0 1111 000").is_normal)
        self.assertTrue(pop.of_spaced_binary_string("0 1111 111").is_nan)
        self.assertFalse(pop.of_spaced_binary_string("0 1111 110").is_infinity)

    def test_e4m3_clamping(self):
        """Out-of-range E4M3 conversions clamp to the largest normal."""
        pop = FloatingPointPopulator(FP8_E4M3)
        self.assertEqual(pop.of_double(448.0).payload, 0x7E)
        self.assertEqual(pop.of_double(1000.0).payload, 0x7E)
        self.assertEqual(pop.of_double(math.inf).payload, 0x7E)
        self.assertEqual(pop.of_double(-1000.0).payload, 0xFE)
        self.assertEqual(pop.of_double(-math.inf).payload, 0xFE)
        self.assertEqual(pop.of_double(math.nan).payload, 0x7F)

    def test_e5m2_corners(self):
        """E5M2 keeps IEEE special values."""
        pop = FloatingPointPopulator(FP8_E5M2)
        self.assertEqual(pop.of_spaced_binary_string("0 11110 11").to_double(), 57344.0)
        self.assertEqual(pop.of_spaced_binary_string("0 00000 01").to_double(), 2.0**-16)
        self.assertTrue(pop.of_spaced_binary_string("0 11111 00").is_infinity)
        self.assertTrue(pop.of_double(65536.0).is_infinity)


class TestCrossFormat(unittest.TestCase):
    """
    Unit tests for conversion between formats.
    """

    def test_explicit_to_implicit(self):
        """Explicit values convert exactly to the implicit format of equal precision."""
        explicit = FloatingPointPopulator(E4M4_EXPLICIT)
        implicit = FloatingPointPopulator(E4M4_EXPLICIT.implicit_format)
        for payload in range(1 << E4M4_EXPLICIT.total_bits):
            efp = explicit.of_logic_value(bits_of(payload, E4M4_EXPLICIT.total_bits))
            if not efp.is_legal_value or efp.is_special:
                continue
            with self.subTest(efp=str(efp)):
                dbl = efp.to_double()
                self.assertEqual(implicit.of_floating_point_value(efp), implicit.of_double(dbl))
                self.assertEqual(implicit.of_floating_point_value(efp).to_double(), dbl)
                canonical = explicit.of_floating_point_value(efp, canonicalize_explicit=True)
                self.assertEqual(canonical.payload, explicit.of_double(dbl).payload)

    def test_same_format_is_identity(self):
        """A same-format value is returned untouched unless canonicalized."""
        explicit = FloatingPointPopulator(E4M4_EXPLICIT)
        efp = explicit.of_spaced_binary_string("0 0011 0100")
        self.assertEqual(explicit.of_floating_point_value(efp).payload, efp.payload)
        self.assertEqual(str(explicit.of_floating_point_value(efp, canonicalize_explicit=True)), "0 0010 1000")

    def test_narrowing(self):
        """Narrowing rounds once and keeps special values."""
        fp16 = FloatingPointPopulator(FLOAT16)
        fp32 = FloatingPointPopulator(FLOAT32)
        self.assertEqual(fp16.of_floating_point_value(fp32.of_double(1.0 / 3.0)), fp16.of_double(1.0 / 3.0))
        self.assertTrue(fp16.of_floating_point_value(fp32.of_double(1e10)).is_infinity)
        self.assertTrue(fp16.of_floating_point_value(fp32.nan).is_nan)
        self.assertEqual(fp16.of_floating_point_value(fp32.negative_infinity), fp16.negative_infinity)
        e4m3 = FloatingPointPopulator(FP8_E4M3)
        self.assertEqual(e4m3.of_floating_point_value(fp16.positive_infinity).to_double(), 448.0)

    def test_of_fixed_point_value(self):
        """Fixed-point values round into floating point."""
        pop = FloatingPointPopulator(E4M4)
        fx = FixedPointValue.of_double(-2.75, FixedFormat(True, 3, 4))
        self.assertEqual(pop.of_fixed_point_value(fx).to_double(), -2.75)
        fx = FixedPointValue.of_double(17.0625, FixedFormat(False, 5, 4))
        self.assertEqual(pop.of_fixed_point_value(fx).to_double(), 17.0)
        self.assertEqual(pop.of_fixed_point_value(fx, RoundingMode.FULL_CEIL).to_double(), 18.0)


class TestSubnormalAsZero(unittest.TestCase):
    """
    Unit tests for the flush-to-zero decode policy.
    """

    def test_subnormals_decode_to_zero(self):
        """Flushed subnormals keep their bits but decode to signed zero."""
        plain = FloatingPointPopulator(E4M4)
        flushed = FloatingPointPopulator(FloatFormat(4, 4, subnormal_as_zero=True))
        for sign in ("0", "1"):
            for mantissa in range(1, 16):
                bits = format(mantissa, "04b")
                with self.subTest(sign=sign, mantissa=bits):
                    fp = plain.of_binary_strings(sign, "0000", bits)
                    fz = flushed.of_binary_strings(sign, "0000", bits)
                    self.assertEqual(str(fz), str(fp))
                    self.assertEqual(fz.to_double(), 0.0)
                    self.assertEqual(math.copysign(1.0, fz.to_double()), -1.0 if sign == "1" else 1.0)
                    self.assertTrue(fz.is_zero)
                    self.assertFalse(fz.is_subnormal)
                    self.assertTrue(fp.is_subnormal)

    def test_conversion_flushes(self):
        """Results below the smallest normal flush to zero."""
        flushed = FloatingPointPopulator(FloatFormat(4, 4, subnormal_as_zero=True))
        self.assertEqual(str(flushed.of_double(2.0**-8)), "0 0000 0000")
        self.assertEqual(str(flushed.of_double(-(2.0**-8))), "1 0000 0000")
        self.assertEqual(flushed.of_double(2.0**-6).to_double(), 2.0**-6)


if __name__ == "__main__":
    unittest.main()
