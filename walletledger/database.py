"""SQLite persistence layer for the walletledger service.

The repository provides a small, well-typed API that hides SQL details from the
rest of the code. It relies on the standard library :mod:`sqlite3` module.

A single connection is shared by every request thread. All access goes through
a re-entrant lock and every multi-statement mutation runs inside
:meth:`SQLiteRepository.atomic`, which holds the lock for the whole unit and
opens an immediate write transaction. Monetary columns are declared as
``DECIMAL_TEXT``: text affinity on the SQLite side, :class:`~decimal.Decimal`
on the Python side.
"""
from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import ZERO, Category, Transaction, Transfer, Wallet, as_utc, to_money, utcnow


def _convert_decimal(raw: bytes) -> Decimal:
    return Decimal(raw.decode("ascii"))


sqlite3.register_converter("DECIMAL_TEXT", _convert_decimal)

_WALLET_COLUMNS = frozenset({"name", "icon", "color", "display_order", "is_active"})
_CATEGORY_COLUMNS = frozenset({"name", "icon"})
_TRANSACTION_COLUMNS = frozenset(
    {"wallet_id", "category_id", "type", "amount", "description", "notes", "transaction_date"}
)


class SQLiteRepository:
    """Encapsulates all SQLite access for the ledger."""

    def __init__(self, database_path: Path | str) -> None:
        self._database_path = database_path
        self._connection = sqlite3.connect(
            database_path,
            detect_types=sqlite3.PARSE_DECLTYPES,
            check_same_thread=False,
            isolation_level=None,
        )
        self._connection.execute("PRAGMA foreign_keys = ON;")
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0

    def close(self) -> None:
        """Close the underlying SQLite connection."""

        with self._lock:
            self._connection.close()

    # ------------------------------------------------------------------
    # Atomic units
    # ------------------------------------------------------------------
    @contextmanager
    def atomic(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements as one unit that commits or rolls back.

        Nested calls join the outermost unit. Any exception rolls back every
        statement issued since the outermost ``atomic()`` was entered and is
        re-raised unchanged.
        """

        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self._connection
                finally:
                    self._depth -= 1
                return

            self._connection.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield self._connection
            except BaseException:
                if self._connection.in_transaction:
                    self._connection.execute("ROLLBACK")
                raise
            else:
                self._connection.execute("COMMIT")
            finally:
                self._depth = 0

    def _execute(self, sql: str, params: Iterable[object] | dict[str, object] = ()) -> sqlite3.Cursor:
        with self._lock:
            if isinstance(params, dict):
                return self._connection.execute(sql, params)
            return self._connection.execute(sql, tuple(params))

    def _query_all(self, sql: str, params: Iterable[object] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._connection.execute(sql, tuple(params)).fetchall()

    def _query_one(self, sql: str, params: Iterable[object] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._connection.execute(sql, tuple(params)).fetchone()

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------
    def initialise_schema(self) -> None:
        """Create all tables required by the service if they do not exist."""

        with self._lock:
            self._connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS wallet (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    icon TEXT,
                    color TEXT,
                    initial_balance DECIMAL_TEXT NOT NULL DEFAULT '0.00',
                    current_balance DECIMAL_TEXT NOT NULL DEFAULT '0.00',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    display_order INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_wallet_user_id ON wallet(user_id);
                CREATE INDEX IF NOT EXISTS idx_wallet_active ON wallet(user_id, is_active);

                CREATE TABLE IF NOT EXISTS category (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
                    icon TEXT,
                    is_default INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_category_user_id ON category(user_id);
                CREATE INDEX IF NOT EXISTS idx_category_type ON category(user_id, type);
                CREATE UNIQUE INDEX IF NOT EXISTS uq_category_user_name_type
                    ON category(user_id, name COLLATE NOCASE, type);

                CREATE TABLE IF NOT EXISTS ledger_transaction (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    wallet_id INTEGER NOT NULL REFERENCES wallet(id) ON DELETE CASCADE,
                    category_id INTEGER REFERENCES category(id) ON DELETE SET NULL,
                    type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
                    amount DECIMAL_TEXT NOT NULL,
                    description TEXT,
                    notes TEXT,
                    transaction_date TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_transaction_user_id ON ledger_transaction(user_id);
                CREATE INDEX IF NOT EXISTS idx_transaction_wallet_id ON ledger_transaction(wallet_id);
                CREATE INDEX IF NOT EXISTS idx_transaction_date ON ledger_transaction(user_id, transaction_date);
                CREATE INDEX IF NOT EXISTS idx_transaction_category ON ledger_transaction(category_id);

                CREATE TABLE IF NOT EXISTS transfer (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    from_wallet_id INTEGER NOT NULL REFERENCES wallet(id) ON DELETE CASCADE,
                    to_wallet_id INTEGER NOT NULL REFERENCES wallet(id) ON DELETE CASCADE,
                    amount DECIMAL_TEXT NOT NULL,
                    fee DECIMAL_TEXT NOT NULL DEFAULT '0.00',
                    description TEXT,
                    transfer_date TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    CHECK (from_wallet_id <> to_wallet_id)
                );
                CREATE INDEX IF NOT EXISTS idx_transfer_user_id ON transfer(user_id);
                CREATE INDEX IF NOT EXISTS idx_transfer_from_wallet ON transfer(from_wallet_id);
                CREATE INDEX IF NOT EXISTS idx_transfer_to_wallet ON transfer(to_wallet_id);
                CREATE INDEX IF NOT EXISTS idx_transfer_date ON transfer(user_id, transfer_date);
                """
            )

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------
    def get_wallet(
        self,
        wallet_id: int,
        user_id: Optional[str] = None,
        active_only: bool = False,
    ) -> Optional[Wallet]:
        sql = "SELECT * FROM wallet WHERE id = ?"
        params: list[object] = [wallet_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        if active_only:
            sql += " AND is_active = 1"
        row = self._query_one(sql, params)
        return _wallet_from_row(row) if row else None

    def list_wallets(self, user_id: str, include_inactive: bool = False) -> list[Wallet]:
        """Return the user's wallets in display order."""

        sql = "SELECT * FROM wallet WHERE user_id = ?"
        if not include_inactive:
            sql += " AND is_active = 1"
        sql += " ORDER BY display_order ASC, created_at ASC, id ASC"
        return [_wallet_from_row(row) for row in self._query_all(sql, (user_id,))]

    def find_wallet_by_name(
        self,
        user_id: str,
        name: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[Wallet]:
        """Return an active wallet whose trimmed name matches ``name`` ignoring case."""

        wanted = _name_key(name)
        for wallet in self.list_wallets(user_id):
            if wallet.id != exclude_id and _name_key(wallet.name) == wanted:
                return wallet
        return None

    def insert_wallet(
        self,
        user_id: str,
        name: str,
        initial_balance: Decimal,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        display_order: int = 0,
    ) -> Wallet:
        now = _ts(utcnow())
        balance = str(to_money(initial_balance))
        cursor = self._execute(
            """
            INSERT INTO wallet (
                user_id, name, icon, color, initial_balance, current_balance,
                is_active, display_order, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?, ?)
            """,
            (user_id, name, icon, color, balance, balance, display_order, now, now),
        )
        return self.get_wallet(int(cursor.lastrowid))

    def update_wallet(self, wallet_id: int, fields: dict[str, object]) -> Optional[Wallet]:
        """Apply ``fields`` (a subset of the mutable wallet columns) to a wallet."""

        self._update("wallet", wallet_id, fields, _WALLET_COLUMNS)
        return self.get_wallet(wallet_id)

    def set_wallet_balance(self, wallet_id: int, balance: Decimal) -> None:
        self._execute(
            "UPDATE wallet SET current_balance = ?, updated_at = ? WHERE id = ?",
            (str(to_money(balance)), _ts(utcnow()), wallet_id),
        )

    def set_wallet_display_order(self, wallet_id: int, display_order: int) -> None:
        self._execute(
            "UPDATE wallet SET display_order = ?, updated_at = ? WHERE id = ?",
            (display_order, _ts(utcnow()), wallet_id),
        )

    def delete_wallet(self, wallet_id: int) -> None:
        """Hard-delete a wallet. Its transactions and transfers cascade."""

        self._execute("DELETE FROM wallet WHERE id = ?", (wallet_id,))

    def transfer_counterparts(self, wallet_id: int) -> set[int]:
        """Return the ids of every wallet that shares a transfer with ``wallet_id``."""

        rows = self._query_all(
            """
            SELECT to_wallet_id AS other FROM transfer WHERE from_wallet_id = ?
            UNION
            SELECT from_wallet_id AS other FROM transfer WHERE to_wallet_id = ?
            """,
            (wallet_id, wallet_id),
        )
        return {int(row["other"]) for row in rows}

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def get_category(self, category_id: int, user_id: Optional[str] = None) -> Optional[Category]:
        sql = "SELECT * FROM category WHERE id = ?"
        params: list[object] = [category_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        row = self._query_one(sql, params)
        return _category_from_row(row) if row else None

    def list_categories(self, user_id: str, entry_type: Optional[str] = None) -> list[Category]:
        sql = "SELECT * FROM category WHERE user_id = ?"
        params: list[object] = [user_id]
        if entry_type is not None:
            sql += " AND type = ?"
            params.append(entry_type)
        sql += " ORDER BY type ASC, name ASC"
        return [_category_from_row(row) for row in self._query_all(sql, params)]

    def find_category_by_name(
        self,
        user_id: str,
        name: str,
        entry_type: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[Category]:
        wanted = _name_key(name)
        for category in self.list_categories(user_id, entry_type):
            if category.id != exclude_id and _name_key(category.name) == wanted:
                return category
        return None

    def insert_category(
        self,
        user_id: str,
        name: str,
        entry_type: str,
        icon: Optional[str] = None,
        is_default: bool = False,
    ) -> Category:
        cursor = self._execute(
            """
            INSERT INTO category (user_id, name, type, icon, is_default, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, name, entry_type, icon, int(is_default), _ts(utcnow())),
        )
        return self.get_category(int(cursor.lastrowid))

    def insert_categories(self, user_id: str, rows: Iterable[tuple[str, str, Optional[str]]], is_default: bool = False) -> int:
        """Insert ``(name, type, icon)`` rows for a user; returns how many were written."""

        now = _ts(utcnow())
        payload = [(user_id, name, entry_type, icon, int(is_default), now) for name, entry_type, icon in rows]
        with self._lock:
            self._connection.executemany(
                """
                INSERT INTO category (user_id, name, type, icon, is_default, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                payload,
            )
        return len(payload)

    def update_category(self, category_id: int, fields: dict[str, object]) -> Optional[Category]:
        self._update("category", category_id, fields, _CATEGORY_COLUMNS, touch=False)
        return self.get_category(category_id)

    def delete_category(self, category_id: int) -> None:
        """Delete a category. Transactions referencing it keep existing, uncategorised."""

        self._execute("DELETE FROM category WHERE id = ?", (category_id,))

    def user_has_ledger(self, user_id: str) -> bool:
        row = self._query_one(
            """
            SELECT EXISTS(SELECT 1 FROM wallet WHERE user_id = ?)
                OR EXISTS(SELECT 1 FROM category WHERE user_id = ?) AS present
            """,
            (user_id, user_id),
        )
        return bool(row["present"])

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def get_transaction(self, transaction_id: int, user_id: Optional[str] = None) -> Optional[Transaction]:
        sql = "SELECT * FROM ledger_transaction WHERE id = ?"
        params: list[object] = [transaction_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        row = self._query_one(sql, params)
        return _transaction_from_row(row) if row else None

    def insert_transaction(
        self,
        user_id: str,
        wallet_id: int,
        entry_type: str,
        amount: Decimal,
        transaction_date: datetime,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        now = _ts(utcnow())
        cursor = self._execute(
            """
            INSERT INTO ledger_transaction (
                user_id, wallet_id, category_id, type, amount, description,
                notes, transaction_date, created_at, updated_at
            ) VALUES (
                :user_id, :wallet_id, :category_id, :type, :amount, :description,
                :notes, :transaction_date, :created_at, :updated_at
            )
            """,
            {
                "user_id": user_id,
                "wallet_id": wallet_id,
                "category_id": category_id,
                "type": entry_type,
                "amount": str(to_money(amount)),
                "description": description,
                "notes": notes,
                "transaction_date": _ts(transaction_date),
                "created_at": now,
                "updated_at": now,
            },
        )
        return self.get_transaction(int(cursor.lastrowid))

    def update_transaction(self, transaction_id: int, fields: dict[str, object]) -> Optional[Transaction]:
        self._update("ledger_transaction", transaction_id, fields, _TRANSACTION_COLUMNS)
        return self.get_transaction(transaction_id)

    def delete_transaction(self, transaction_id: int) -> None:
        self._execute("DELETE FROM ledger_transaction WHERE id = ?", (transaction_id,))

    def list_transactions(
        self,
        user_id: str,
        *,
        wallet_id: Optional[int] = None,
        category_id: Optional[int] = None,
        entry_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> list[Transaction]:
        """Return matching transactions, newest first."""

        where, params = _transaction_conditions(user_id, wallet_id, category_id, entry_type, start, end)
        rows = self._query_all(
            f"""
            SELECT * FROM ledger_transaction
            WHERE {where}
            ORDER BY transaction_date DESC, created_at DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            [*params, limit, offset],
        )
        return [_transaction_from_row(row) for row in rows]

    def count_transactions(
        self,
        user_id: str,
        *,
        wallet_id: Optional[int] = None,
        category_id: Optional[int] = None,
        entry_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        where, params = _transaction_conditions(user_id, wallet_id, category_id, entry_type, start, end)
        row = self._query_one(f"SELECT COUNT(*) AS total FROM ledger_transaction WHERE {where}", params)
        return int(row["total"])

    def transactions_frame_rows(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[dict[str, object]]:
        """Return flat rows (with category data joined) for analytical queries."""

        where, params = _transaction_conditions(user_id, None, None, None, start, end, alias="t")
        rows = self._query_all(
            f"""
            SELECT
                t.id AS id,
                t.wallet_id AS wallet_id,
                t.category_id AS category_id,
                t.type AS type,
                t.amount AS amount,
                t.transaction_date AS transaction_date,
                c.name AS category_name,
                c.icon AS category_icon,
                c.type AS category_type
            FROM ledger_transaction AS t
            LEFT JOIN category AS c ON c.id = t.category_id
            WHERE {where}
            """,
            params,
        )
        return [
            {
                **dict(row),
                "amount": to_money(row["amount"]),
                "transaction_date": _parse_ts(row["transaction_date"]),
            }
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------
    def get_transfer(self, transfer_id: int, user_id: Optional[str] = None) -> Optional[Transfer]:
        sql = "SELECT * FROM transfer WHERE id = ?"
        params: list[object] = [transfer_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        row = self._query_one(sql, params)
        return _transfer_from_row(row) if row else None

    def insert_transfer(
        self,
        user_id: str,
        from_wallet_id: int,
        to_wallet_id: int,
        amount: Decimal,
        fee: Decimal,
        transfer_date: datetime,
        description: Optional[str] = None,
    ) -> Transfer:
        now = _ts(utcnow())
        cursor = self._execute(
            """
            INSERT INTO transfer (
                user_id, from_wallet_id, to_wallet_id, amount, fee,
                description, transfer_date, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                from_wallet_id,
                to_wallet_id,
                str(to_money(amount)),
                str(to_money(fee)),
                description,
                _ts(transfer_date),
                now,
                now,
            ),
        )
        return self.get_transfer(int(cursor.lastrowid))

    def delete_transfer(self, transfer_id: int) -> None:
        self._execute("DELETE FROM transfer WHERE id = ?", (transfer_id,))

    def list_transfers(
        self,
        user_id: str,
        *,
        wallet_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> list[Transfer]:
        """Return matching transfers, newest first by transfer date then creation time."""

        where, params = _transfer_conditions(user_id, wallet_id, start, end)
        rows = self._query_all(
            f"""
            SELECT * FROM transfer
            WHERE {where}
            ORDER BY transfer_date DESC, created_at DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            [*params, limit, offset],
        )
        return [_transfer_from_row(row) for row in rows]

    def count_transfers(
        self,
        user_id: str,
        *,
        wallet_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        where, params = _transfer_conditions(user_id, wallet_id, start, end)
        row = self._query_one(f"SELECT COUNT(*) AS total FROM transfer WHERE {where}", params)
        return int(row["total"])

    # ------------------------------------------------------------------
    # Ledger aggregates
    # ------------------------------------------------------------------
    def sum_transactions(self, wallet_id: int, entry_type: str) -> Decimal:
        """Sum the amounts of a wallet's transactions of one direction."""

        rows = self._query_all(
            "SELECT amount FROM ledger_transaction WHERE wallet_id = ? AND type = ?",
            (wallet_id, entry_type),
        )
        return sum((to_money(row["amount"]) for row in rows), ZERO)

    def sum_transfers_in(self, wallet_id: int) -> Decimal:
        rows = self._query_all("SELECT amount FROM transfer WHERE to_wallet_id = ?", (wallet_id,))
        return sum((to_money(row["amount"]) for row in rows), ZERO)

    def sum_transfers_out(self, wallet_id: int) -> tuple[Decimal, Decimal]:
        """Return ``(amount, fee)`` totals of the transfers sent from a wallet."""

        rows = self._query_all("SELECT amount, fee FROM transfer WHERE from_wallet_id = ?", (wallet_id,))
        amount = sum((to_money(row["amount"]) for row in rows), ZERO)
        fee = sum((to_money(row["fee"]) for row in rows), ZERO)
        return amount, fee

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _update(
        self,
        table: str,
        row_id: int,
        fields: dict[str, object],
        allowed: frozenset[str],
        touch: bool = True,
    ) -> None:
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update {table} columns: {', '.join(sorted(unknown))}")
        values = {key: _to_db(value) for key, value in fields.items()}
        if touch:
            values["updated_at"] = _ts(utcnow())
        if not values:
            return
        assignments = ", ".join(f"{column} = :{column}" for column in values)
        self._execute(f"UPDATE {table} SET {assignments} WHERE id = :row_id", {**values, "row_id": row_id})


def _name_key(name: str) -> str:
    return name.strip().casefold()


def _ts(value: datetime) -> str:
    return as_utc(value).isoformat(timespec="microseconds")


def _parse_ts(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


def _to_db(value: object) -> object:
    if isinstance(value, Decimal):
        return str(to_money(value))
    if isinstance(value, datetime):
        return _ts(value)
    if isinstance(value, bool):
        return int(value)
    return value


def _transaction_conditions(
    user_id: str,
    wallet_id: Optional[int],
    category_id: Optional[int],
    entry_type: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
    alias: str = "",
) -> tuple[str, list[object]]:
    prefix = f"{alias}." if alias else ""
    clauses = [f"{prefix}user_id = ?"]
    params: list[object] = [user_id]
    if wallet_id is not None:
        clauses.append(f"{prefix}wallet_id = ?")
        params.append(wallet_id)
    if category_id is not None:
        clauses.append(f"{prefix}category_id = ?")
        params.append(category_id)
    if entry_type is not None:
        clauses.append(f"{prefix}type = ?")
        params.append(entry_type)
    if start is not None:
        clauses.append(f"{prefix}transaction_date >= ?")
        params.append(_ts(start))
    if end is not None:
        clauses.append(f"{prefix}transaction_date <= ?")
        params.append(_ts(end))
    return " AND ".join(clauses), params


def _transfer_conditions(
    user_id: str,
    wallet_id: Optional[int],
    start: Optional[datetime],
    end: Optional[datetime],
) -> tuple[str, list[object]]:
    clauses = ["user_id = ?"]
    params: list[object] = [user_id]
    if wallet_id is not None:
        clauses.append("(from_wallet_id = ? OR to_wallet_id = ?)")
        params.extend([wallet_id, wallet_id])
    if start is not None:
        clauses.append("transfer_date >= ?")
        params.append(_ts(start))
    if end is not None:
        clauses.append("transfer_date <= ?")
        params.append(_ts(end))
    return " AND ".join(clauses), params


def _wallet_from_row(row: sqlite3.Row) -> Wallet:
    return Wallet(
        id=int(row["id"]),
        user_id=row["user_id"],
        name=row["name"],
        icon=row["icon"],
        color=row["color"],
        initial_balance=to_money(row["initial_balance"]),
        current_balance=to_money(row["current_balance"]),
        is_active=bool(row["is_active"]),
        display_order=int(row["display_order"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _category_from_row(row: sqlite3.Row) -> Category:
    return Category(
        id=int(row["id"]),
        user_id=row["user_id"],
        name=row["name"],
        type=row["type"],
        icon=row["icon"],
        is_default=bool(row["is_default"]),
        created_at=_parse_ts(row["created_at"]),
    )


def _transaction_from_row(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=int(row["id"]),
        user_id=row["user_id"],
        wallet_id=int(row["wallet_id"]),
        category_id=int(row["category_id"]) if row["category_id"] is not None else None,
        type=row["type"],
        amount=to_money(row["amount"]),
        description=row["description"],
        notes=row["notes"],
        transaction_date=_parse_ts(row["transaction_date"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _transfer_from_row(row: sqlite3.Row) -> Transfer:
    return Transfer(
        id=int(row["id"]),
        user_id=row["user_id"],
        from_wallet_id=int(row["from_wallet_id"]),
        to_wallet_id=int(row["to_wallet_id"]),
        amount=to_money(row["amount"]),
        fee=to_money(row["fee"]),
        description=row["description"],
        transfer_date=_parse_ts(row["transfer_date"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )
