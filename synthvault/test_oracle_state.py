"""
Test the oracle price record: bounds, staleness and storage.
"""
import unittest

from synthvault.constants import EXPIRY_BLOCKS, MAXIMUM_PRICE
from synthvault.errors import ArithmeticOverflow, InvalidPrice
from synthvault.oracle_state import OraclePrice


class TestOraclePrice(unittest.TestCase):
    def test_initialization(self):
        oracle = OraclePrice()
        self.assertEqual(oracle.value, 0)
        self.assertEqual(oracle.last_update_height, 0)
        self.assertFalse(oracle.is_set)

    def test_update(self):
        oracle = OraclePrice()
        oracle.update(12345, 42)
        self.assertEqual(oracle.value, 12345)
        self.assertEqual(oracle.last_update_height, 42)
        self.assertTrue(oracle.is_set)

    def test_price_bounds(self):
        oracle = OraclePrice()
        with self.assertRaises(InvalidPrice):
            oracle.update(0, 1)
        with self.assertRaises(InvalidPrice):
            oracle.update(MAXIMUM_PRICE, 1)
        oracle.update(MAXIMUM_PRICE - 1, 1)
        self.assertEqual(oracle.value, MAXIMUM_PRICE - 1)

    def test_rejected_update_leaves_record(self):
        oracle = OraclePrice({'value': 100, 'last_update_height': 5})
        with self.assertRaises(InvalidPrice):
            oracle.update(0, 10)
        self.assertEqual(oracle.value, 100)
        self.assertEqual(oracle.last_update_height, 5)

    def test_freshness_boundary(self):
        oracle = OraclePrice({'value': 100, 'last_update_height': 10})
        self.assertTrue(oracle.is_fresh(10))
        self.assertTrue(oracle.is_fresh(10 + EXPIRY_BLOCKS))
        self.assertFalse(oracle.is_fresh(10 + EXPIRY_BLOCKS + 1))

    def test_unset_price_is_never_fresh(self):
        self.assertFalse(OraclePrice().is_fresh(0))

    def test_height_going_backwards(self):
        oracle = OraclePrice({'value': 100, 'last_update_height': 10})
        with self.assertRaises(ArithmeticOverflow):
            oracle.is_fresh(9)

    def test_storage_roundtrip_keeps_large_values(self):
        oracle = OraclePrice({'value': MAXIMUM_PRICE - 1, 'last_update_height': 2 ** 70})
        restored = OraclePrice(oracle.to_dict())
        self.assertEqual(restored.value, MAXIMUM_PRICE - 1)
        self.assertEqual(restored.last_update_height, 2 ** 70)

    def test_repr(self):
        oracle = OraclePrice({'value': 12305, 'last_update_height': 7})
        self.assertIn("123.05", repr(oracle))

    def test_negative_fields_rejected(self):
        with self.assertRaises(ValueError):
            OraclePrice({'value': -1, 'last_update_height': 0})


if __name__ == '__main__':
    unittest.main()
