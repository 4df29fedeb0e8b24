"""
Test vault records, ratio math and the vault store.
"""
import unittest
import shutil
import tempfile

from synthvault.db import DB
from synthvault.errors import ArithmeticOverflow, InvalidPrice, VaultNotFound
from synthvault.state import StateBatch
from synthvault.vault_state import Vault, VaultStatus, VaultStore

ALICE = b'\x11' * 20
BOB = b'\x22' * 20


def make_vault(collateral, minted, price_at_lock=100):
    return Vault({'collateral': collateral, 'minted': minted, 'price_at_lock': price_at_lock})


class TestVault(unittest.TestCase):
    def test_status(self):
        self.assertEqual(Vault().status, VaultStatus.EMPTY)
        self.assertEqual(make_vault(10, 0).status, VaultStatus.COLLATERAL_ONLY)
        self.assertEqual(make_vault(10, 5).status, VaultStatus.ACTIVE)

    def test_ratio_at_mint_price(self):
        vault = make_vault(150_000_000, 100_000_000)
        self.assertEqual(vault.collateral_ratio(100), 150)

    def test_ratio_truncates(self):
        vault = make_vault(150_000_000, 100_000_000)
        # 1.5e12 / 1.3e10 = 115.38...
        self.assertEqual(vault.collateral_ratio(130), 115)
        self.assertEqual(vault.collateral_ratio(125), 120)

    def test_ratio_without_minted_position(self):
        with self.assertRaises(VaultNotFound):
            make_vault(10, 0).collateral_ratio(100)

    def test_ratio_at_zero_price(self):
        with self.assertRaises(InvalidPrice):
            make_vault(10, 10).collateral_ratio(0)

    def test_collateral_return_is_proportional(self):
        vault = make_vault(150_000_000, 100_000_000)
        self.assertEqual(vault.collateral_return(100_000_000), 150_000_000)
        self.assertEqual(vault.collateral_return(50_000_000), 75_000_000)
        # 150 * 1 // 100 truncates to 1
        self.assertEqual(make_vault(150, 100).collateral_return(1), 1)

    def test_add_collateral_refreshes_price(self):
        vault = make_vault(100, 50, price_at_lock=100)
        vault.add_collateral(25, 140)
        self.assertEqual(vault.collateral, 125)
        self.assertEqual(vault.minted, 50)
        self.assertEqual(vault.price_at_lock, 140)

    def test_release_underflow(self):
        vault = make_vault(100, 50)
        with self.assertRaises(ArithmeticOverflow):
            vault.release(101, 1, 100)


class TestVaultStore(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.db = DB(self.test_dir)
        self.store = VaultStore(StateBatch(self.db))

    def tearDown(self):
        self.db.close()
        shutil.rmtree(self.test_dir)

    def test_missing_vault(self):
        self.assertIsNone(self.store.get(ALICE))
        self.assertEqual(self.store.get_or_default(ALICE), Vault())

    def test_put_get_delete(self):
        vault = make_vault(2 ** 100, 3)
        self.store.put(ALICE, vault)
        self.assertEqual(self.store.get(ALICE), vault)
        self.store.delete(ALICE)
        self.assertIsNone(self.store.get(ALICE))

    def test_items_and_total_collateral(self):
        self.store.put(BOB, make_vault(20, 1))
        self.store.put(ALICE, make_vault(10, 1))
        self.assertEqual([addr for addr, _ in self.store.items()], [ALICE, BOB])
        self.assertEqual(self.store.total_collateral(), 30)


if __name__ == '__main__':
    unittest.main()
