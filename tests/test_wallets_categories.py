# tests/test_wallets_categories.py
import unittest
from decimal import Decimal

from walletledger.errors import DuplicateEntry, InvalidOperation, NotFound, ValidationError
from walletledger.seed import DEFAULT_CATEGORIES, DEFAULT_WALLET_NAME, setup_new_user

from tests.support import OTHER_USER, USER, LedgerTestCase, at


class TestWallets(LedgerTestCase):
    def test_create_trims_name(self):
        wallet = self.make_wallet("  Savings  ", "12.5")
        self.assertEqual(wallet.name, "Savings")
        self.assertEqual(wallet.initial_balance, Decimal("12.50"))
        self.assertTrue(wallet.is_active)

    def test_rejects_blank_long_or_negative(self):
        with self.assertRaises(ValidationError):
            self.make_wallet("   ")
        with self.assertRaises(ValidationError):
            self.make_wallet("x" * 51)
        with self.assertRaises(ValidationError):
            self.make_wallet("Debt", -1)

    def test_duplicate_names_ignore_case(self):
        self.make_wallet("Cash")
        with self.assertRaises(DuplicateEntry):
            self.make_wallet(" cash ")
        # a different user may reuse the name
        self.make_wallet("Cash", user_id=OTHER_USER)

    def test_soft_deleted_name_is_free_again(self):
        old = self.make_wallet("Cash", 10)
        self.wallets.soft_delete_wallet(USER, old.id)
        new = self.make_wallet("Cash")
        self.assertNotEqual(old.id, new.id)
        with self.assertRaises(DuplicateEntry):
            self.wallets.update_wallet(USER, old.id, {"is_active": True})

    def test_soft_delete_hides_wallet_but_keeps_history(self):
        wallet = self.make_wallet("Cash", 10)
        self.transactions.create(USER, wallet.id, "income", "5", at(2024, 1, 1))
        self.wallets.soft_delete_wallet(USER, wallet.id)

        self.assertEqual(self.wallets.list_wallets(USER), [])
        self.assertEqual([item.id for item in self.wallets.list_wallets(USER, include_inactive=True)], [wallet.id])
        self.assertEqual(self.transactions.list_transactions(USER).total, 1)
        self.assertEqual(self.balance(wallet.id), Decimal("15.00"))

    def test_update_keeps_balance(self):
        wallet = self.make_wallet("Cash", 10)
        updated = self.wallets.update_wallet(USER, wallet.id, {"name": "Pocket", "color": "#000000", "icon": None})
        self.assertEqual(updated.name, "Pocket")
        self.assertEqual(updated.color, "#000000")
        self.assertEqual(updated.current_balance, Decimal("10.00"))

    def test_rename_to_own_name_in_other_case(self):
        wallet = self.make_wallet("Cash")
        updated = self.wallets.update_wallet(USER, wallet.id, {"name": "CASH"})
        self.assertEqual(updated.name, "CASH")

    def test_foreign_wallet_is_not_found(self):
        wallet = self.make_wallet("Cash")
        with self.assertRaises(NotFound):
            self.wallets.get_wallet(OTHER_USER, wallet.id)
        with self.assertRaises(NotFound):
            self.wallets.update_wallet(OTHER_USER, wallet.id, {"name": "Mine"})
        with self.assertRaises(NotFound):
            self.wallets.soft_delete_wallet(OTHER_USER, wallet.id)

    def test_reorder(self):
        first = self.make_wallet("First")
        second = self.make_wallet("Second")
        ordered = self.wallets.reorder_wallets(USER, [(first.id, 2), (second.id, 1)])
        self.assertEqual([wallet.id for wallet in ordered], [second.id, first.id])

    def test_reorder_is_all_or_nothing(self):
        first = self.make_wallet("First")
        foreign = self.make_wallet("Theirs", user_id=OTHER_USER)
        with self.assertRaises(NotFound):
            self.wallets.reorder_wallets(USER, [(first.id, 7), (foreign.id, 1)])
        self.assertEqual(self.wallets.get_wallet(USER, first.id).display_order, 0)
        self.assertEqual(self.wallets.get_wallet(OTHER_USER, foreign.id).display_order, 0)


class TestPurgeWallet(LedgerTestCase):
    def test_active_wallet_cannot_be_purged(self):
        wallet = self.make_wallet("Cash")
        with self.assertRaises(InvalidOperation):
            self.wallets.purge_wallet(USER, wallet.id)

    def test_purge_reconciles_counterparts(self):
        doomed = self.make_wallet("Old", 500)
        keeper = self.make_wallet("Keeper", 0)
        self.transfers.create(USER, doomed.id, keeper.id, "200", at(2024, 1, 1), fee="1")
        self.transactions.create(USER, doomed.id, "expense", "10", at(2024, 1, 2))
        self.assertEqual(self.balance(keeper.id), Decimal("200.00"))

        self.wallets.soft_delete_wallet(USER, doomed.id)
        reconciled = self.wallets.purge_wallet(USER, doomed.id)

        self.assertEqual(reconciled, {keeper.id})
        self.assertIsNone(self.repository.get_wallet(doomed.id))
        self.assertEqual(self.transactions.list_transactions(USER).total, 0)
        self.assertEqual(self.transfers.list_transfers(USER).total, 0)
        self.assertEqual(self.balance(keeper.id), Decimal("0.00"))
        self.assertConsistent(keeper.id)


class TestReconcileService(LedgerTestCase):
    def test_reconcile_repairs_drift(self):
        wallet = self.make_wallet("Cash", 10)
        self.repository.set_wallet_balance(wallet.id, Decimal("3"))
        drifts = self.wallets.reconcile(USER)
        self.assertEqual([drift.to_dict()["delta"] for drift in drifts], ["7.00"])
        self.assertEqual(self.wallets.recompute_balance(USER, wallet.id), Decimal("10.00"))
        self.assertEqual(self.balance(wallet.id), Decimal("10.00"))


class TestCategories(LedgerTestCase):
    def test_same_name_allowed_across_types(self):
        self.make_category("Other", "income")
        self.make_category("Other", "expense")
        with self.assertRaises(DuplicateEntry):
            self.make_category("OTHER ", "income")

    def test_type_filter_and_validation(self):
        self.make_category("Salary", "income")
        self.make_category("Food", "expense")
        names = [category.name for category in self.categories.list_categories(USER, "expense")]
        self.assertEqual(names, ["Food"])
        with self.assertRaises(ValidationError):
            self.categories.list_categories(USER, "transfer")
        with self.assertRaises(ValidationError):
            self.make_category("Refund", "transfer")

    def test_update_and_delete(self):
        category = self.make_category("Food", "expense")
        renamed = self.categories.update_category(USER, category.id, {"name": "Groceries", "icon": "🥕"})
        self.assertEqual((renamed.name, renamed.icon), ("Groceries", "🥕"))
        self.categories.delete_category(USER, category.id)
        self.assertEqual(self.categories.list_categories(USER), [])

    def test_rename_collision(self):
        self.make_category("Food", "expense")
        other = self.make_category("Drinks", "expense")
        with self.assertRaises(DuplicateEntry):
            self.categories.update_category(USER, other.id, {"name": "food"})

    def test_foreign_category_is_not_found(self):
        category = self.make_category("Food", "expense")
        with self.assertRaises(NotFound):
            self.categories.delete_category(OTHER_USER, category.id)

    def test_default_categories_are_read_only(self):
        setup_new_user(self.repository, USER)
        default = self.categories.list_categories(USER, "income")[0]
        self.assertTrue(default.is_default)
        with self.assertRaisesRegex(ValidationError, "Cannot edit default categories"):
            self.categories.update_category(USER, default.id, {"name": "Renamed"})
        with self.assertRaisesRegex(ValidationError, "Cannot delete default categories"):
            self.categories.delete_category(USER, default.id)


class TestSetupNewUser(LedgerTestCase):
    def test_seeds_defaults_once(self):
        result = setup_new_user(self.repository, USER)
        expected = sum(len(rows) for rows in DEFAULT_CATEGORIES.values())
        self.assertTrue(result.created)
        self.assertEqual(result.categories_count, expected)
        self.assertEqual(result.default_wallet.name, DEFAULT_WALLET_NAME)
        self.assertEqual(result.default_wallet.current_balance, Decimal("0.00"))
        self.assertEqual(len(self.categories.list_categories(USER)), expected)

        again = setup_new_user(self.repository, USER)
        self.assertFalse(again.created)
        self.assertEqual(again.to_dict(), {"created": False, "categoriesCount": 0, "defaultWallet": None})
        self.assertEqual(len(self.categories.list_categories(USER)), expected)
        self.assertEqual(len(self.wallets.list_wallets(USER)), 1)

    def test_existing_users_are_left_alone(self):
        self.make_wallet("Cash")
        self.assertFalse(setup_new_user(self.repository, USER).created)
        self.assertEqual(self.categories.list_categories(USER), [])


if __name__ == "__main__":
    unittest.main()
