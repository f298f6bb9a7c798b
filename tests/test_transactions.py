# tests/test_transactions.py
import sqlite3
import unittest
from decimal import Decimal
from unittest.mock import patch

from walletledger.errors import NotFound, ValidationError

from tests.support import OTHER_USER, USER, LedgerTestCase, at


class TestTransactionWrites(LedgerTestCase):
    def setUp(self):
        super().setUp()
        self.cash = self.make_wallet("Cash", 100)
        self.bank = self.make_wallet("Bank", 0)
        self.salary = self.make_category("Salary", "income")
        self.food = self.make_category("Food", "expense")

    def test_income_and_expense_move_the_balance(self):
        self.transactions.create(USER, self.cash.id, "income", "50", at(2024, 1, 1), category_id=self.salary.id)
        self.transactions.create(USER, self.cash.id, "expense", "30.10", at(2024, 1, 2), category_id=self.food.id)
        self.assertEqual(self.balance(self.cash.id), Decimal("119.90"))
        self.assertConsistent(self.cash.id)

    def test_amount_is_stored_in_cents(self):
        transaction = self.transactions.create(USER, self.cash.id, "income", "10.5", at(2024, 1, 1))
        self.assertEqual(transaction.amount, Decimal("10.50"))
        self.assertEqual(transaction.signed_amount(), Decimal("10.50"))

    def test_sub_cent_and_oversized_amounts_are_rejected(self):
        for amount in ("10.005", "0.004", "1e27", "NaN", "Infinity", "ten"):
            with self.subTest(amount=amount), self.assertRaises(ValidationError):
                self.transactions.create(USER, self.cash.id, "income", amount, at(2024, 1, 1))
        transaction = self.transactions.create(USER, self.cash.id, "income", "1", at(2024, 1, 1))
        with self.assertRaises(ValidationError):
            self.transactions.update(USER, transaction.id, {"amount": Decimal("2.999")})
        self.assertEqual(self.transactions.list_transactions(USER).total, 1)
        self.assertEqual(self.balance(self.cash.id), Decimal("101.00"))

    def test_rejects_non_positive_amount_and_bad_type(self):
        with self.assertRaises(ValidationError):
            self.transactions.create(USER, self.cash.id, "income", "0", at(2024, 1, 1))
        with self.assertRaises(ValidationError):
            self.transactions.create(USER, self.cash.id, "refund", "5", at(2024, 1, 1))
        self.assertEqual(self.balance(self.cash.id), Decimal("100.00"))

    def test_category_type_must_match(self):
        with self.assertRaises(ValidationError):
            self.transactions.create(USER, self.cash.id, "income", "5", at(2024, 1, 1), category_id=self.food.id)

    def test_foreign_wallet_and_category(self):
        foreign_wallet = self.make_wallet("Theirs", user_id=OTHER_USER)
        foreign_category = self.make_category("Theirs", "income", user_id=OTHER_USER)
        with self.assertRaises(NotFound):
            self.transactions.create(USER, foreign_wallet.id, "income", "5", at(2024, 1, 1))
        with self.assertRaises(NotFound):
            self.transactions.create(
                USER, self.cash.id, "income", "5", at(2024, 1, 1), category_id=foreign_category.id
            )
        self.assertEqual(self.balance(foreign_wallet.id), Decimal("0.00"))

    def test_update_amount_and_type(self):
        transaction = self.transactions.create(USER, self.cash.id, "expense", "20", at(2024, 1, 1))
        self.assertEqual(self.balance(self.cash.id), Decimal("80.00"))

        self.transactions.update(USER, transaction.id, {"amount": Decimal("35")})
        self.assertEqual(self.balance(self.cash.id), Decimal("65.00"))

        updated = self.transactions.update(USER, transaction.id, {"type": "income"})
        self.assertEqual(updated.type, "income")
        self.assertEqual(self.balance(self.cash.id), Decimal("135.00"))
        self.assertConsistent(self.cash.id)

    def test_moving_between_wallets_reconciles_both(self):
        transaction = self.transactions.create(USER, self.cash.id, "income", "40", at(2024, 1, 1))
        moved = self.transactions.update(USER, transaction.id, {"wallet_id": self.bank.id})
        self.assertEqual(moved.wallet_id, self.bank.id)
        self.assertEqual(self.balance(self.cash.id), Decimal("100.00"))
        self.assertEqual(self.balance(self.bank.id), Decimal("40.00"))
        self.assertConsistent(self.cash.id, self.bank.id)

    def test_moving_to_foreign_wallet_is_rejected(self):
        foreign = self.make_wallet("Theirs", user_id=OTHER_USER)
        transaction = self.transactions.create(USER, self.cash.id, "income", "40", at(2024, 1, 1))
        with self.assertRaises(NotFound) as ctx:
            self.transactions.update(USER, transaction.id, {"wallet_id": foreign.id})
        self.assertEqual(ctx.exception.message, "New wallet not found")
        self.assertEqual(self.transactions.get(USER, transaction.id).wallet_id, self.cash.id)
        self.assertEqual(self.balance(foreign.id), Decimal("0.00"))

    def test_changing_type_checks_existing_category(self):
        transaction = self.transactions.create(
            USER, self.cash.id, "income", "40", at(2024, 1, 1), category_id=self.salary.id
        )
        with self.assertRaises(ValidationError):
            self.transactions.update(USER, transaction.id, {"type": "expense"})
        updated = self.transactions.update(USER, transaction.id, {"type": "expense", "category_id": self.food.id})
        self.assertEqual(updated.category_id, self.food.id)

    def test_category_can_be_cleared(self):
        transaction = self.transactions.create(
            USER, self.cash.id, "income", "40", at(2024, 1, 1), category_id=self.salary.id
        )
        updated = self.transactions.update(USER, transaction.id, {"category_id": None, "notes": None})
        self.assertIsNone(updated.category_id)

    def test_delete_reverses_effect(self):
        transaction = self.transactions.create(USER, self.cash.id, "expense", "60", at(2024, 1, 1))
        self.transactions.delete(USER, transaction.id)
        self.assertEqual(self.balance(self.cash.id), Decimal("100.00"))
        with self.assertRaises(NotFound):
            self.transactions.get(USER, transaction.id)

    def test_other_user_cannot_touch_transaction(self):
        transaction = self.transactions.create(USER, self.cash.id, "expense", "60", at(2024, 1, 1))
        with self.assertRaises(NotFound):
            self.transactions.get(OTHER_USER, transaction.id)
        with self.assertRaises(NotFound):
            self.transactions.delete(OTHER_USER, transaction.id)
        self.assertEqual(self.balance(self.cash.id), Decimal("40.00"))

    def test_failed_reconciliation_rolls_back_the_row(self):
        with patch.object(
            self.reconciler,
            "update_balance",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            with self.assertRaises(sqlite3.OperationalError):
                self.transactions.create(USER, self.cash.id, "income", "25", at(2024, 1, 1))
        self.assertEqual(self.transactions.list_transactions(USER).total, 0)
        self.assertEqual(self.balance(self.cash.id), Decimal("100.00"))

    def test_inactive_wallet_still_accepts_entries(self):
        self.wallets.soft_delete_wallet(USER, self.bank.id)
        self.transactions.create(USER, self.bank.id, "income", "5", at(2024, 1, 1))
        self.assertEqual(self.balance(self.bank.id), Decimal("5.00"))


class TestCategoryDeletion(LedgerTestCase):
    def test_transactions_survive_uncategorised(self):
        wallet = self.make_wallet("Cash", 100)
        gym = self.make_category("Gym", "expense")
        first = self.transactions.create(USER, wallet.id, "expense", "10", at(2024, 1, 1), category_id=gym.id)
        second = self.transactions.create(USER, wallet.id, "expense", "15", at(2024, 1, 2), category_id=gym.id)

        self.categories.delete_category(USER, gym.id)

        for transaction_id in (first.id, second.id):
            self.assertIsNone(self.transactions.get(USER, transaction_id).category_id)
        self.assertEqual(self.balance(wallet.id), Decimal("75.00"))
        self.assertConsistent(wallet.id)


class TestListTransactions(LedgerTestCase):
    def setUp(self):
        super().setUp()
        self.cash = self.make_wallet("Cash", 0)
        self.bank = self.make_wallet("Bank", 0)
        self.food = self.make_category("Food", "expense")
        self.january = self.transactions.create(USER, self.cash.id, "income", "100", at(2024, 1, 15))
        self.february = self.transactions.create(
            USER, self.bank.id, "expense", "20", at(2024, 2, 15), category_id=self.food.id
        )
        self.march = self.transactions.create(USER, self.cash.id, "expense", "5", at(2024, 3, 15))

    def test_newest_first_with_pagination(self):
        page = self.transactions.list_transactions(USER, limit=2)
        self.assertEqual([item.id for item in page.items], [self.march.id, self.february.id])
        self.assertEqual(page.total, 3)
        self.assertEqual(page.total_pages, 2)

    def test_filters(self):
        by_wallet = self.transactions.list_transactions(USER, wallet_id=self.cash.id)
        self.assertEqual({item.id for item in by_wallet.items}, {self.january.id, self.march.id})

        by_type = self.transactions.list_transactions(USER, entry_type="expense")
        self.assertEqual(by_type.total, 2)

        by_category = self.transactions.list_transactions(USER, category_id=self.food.id)
        self.assertEqual([item.id for item in by_category.items], [self.february.id])

        by_date = self.transactions.list_transactions(USER, start_date=at(2024, 2, 1), end_date=at(2024, 2, 28))
        self.assertEqual([item.id for item in by_date.items], [self.february.id])

    def test_recent(self):
        self.assertEqual([item.id for item in self.transactions.recent(USER, limit=1)], [self.march.id])

    def test_rejects_bad_paging(self):
        with self.assertRaises(ValidationError):
            self.transactions.list_transactions(USER, limit=0)


if __name__ == "__main__":
    unittest.main()
