"""
Test overflow-checked uint128 arithmetic.
"""
import unittest

from synthvault.constants import MAX_UINT
from synthvault.errors import ArithmeticOverflow, ProtocolError
from synthvault.safe_math import checked_add, checked_mul, checked_sub


class TestCheckedArithmetic(unittest.TestCase):
    def test_add(self):
        self.assertEqual(checked_add(2, 3), 5)
        self.assertEqual(checked_add(MAX_UINT - 1, 1), MAX_UINT)

    def test_add_overflow(self):
        with self.assertRaises(ArithmeticOverflow):
            checked_add(MAX_UINT, 1)

    def test_sub(self):
        self.assertEqual(checked_sub(5, 5), 0)
        self.assertEqual(checked_sub(MAX_UINT, 1), MAX_UINT - 1)

    def test_sub_underflow(self):
        with self.assertRaises(ArithmeticOverflow):
            checked_sub(1, 2)

    def test_mul(self):
        self.assertEqual(checked_mul(0, MAX_UINT), 0)
        self.assertEqual(checked_mul(2 ** 64, 2 ** 63), 2 ** 127)

    def test_mul_overflow(self):
        with self.assertRaises(ArithmeticOverflow):
            checked_mul(2 ** 64, 2 ** 64)

    def test_operands_out_of_range(self):
        with self.assertRaises(ArithmeticOverflow):
            checked_add(-1, 1)
        with self.assertRaises(ArithmeticOverflow):
            checked_mul(MAX_UINT + 1, 0)

    def test_non_integer_operands(self):
        with self.assertRaises(TypeError):
            checked_add(1.5, 1)
        with self.assertRaises(TypeError):
            checked_sub(True, 0)

    def test_overflow_error_shape(self):
        with self.assertRaises(ArithmeticError) as cm:
            checked_add(MAX_UINT, MAX_UINT)
        self.assertIsInstance(cm.exception, ProtocolError)
        self.assertEqual(cm.exception.code, 109)
        self.assertEqual(cm.exception.kind, "ArithmeticOverflow")


if __name__ == '__main__':
    unittest.main()
