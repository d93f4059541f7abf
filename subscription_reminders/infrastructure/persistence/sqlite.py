import sqlite3
import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from ...domain.errors import InvalidTransitionError
from ...domain.models import (
    Confirmation,
    Customer,
    CustomerAction,
    Frequency,
    Product,
    Subscription,
    SubscriptionStatus,
)
from ...domain.ports.persistence import PersistenceGateway


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Union[Path, str]) -> None:
        if str(path) != ":memory:":
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                PRAGMA foreign_keys = ON;

                CREATE TABLE IF NOT EXISTS customers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL,
                    full_name TEXT
                );

                CREATE TABLE IF NOT EXISTS products (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    base_price TEXT NOT NULL,
                    image_url TEXT
                );

                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    customer_id INTEGER NOT NULL,
                    product_id INTEGER NOT NULL,
                    frequency TEXT NOT NULL,
                    quantity INTEGER NOT NULL,
                    discount_percent TEXT NOT NULL,
                    status TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    next_delivery_date TEXT NOT NULL,
                    pause_until TEXT,
                    payment_method_id TEXT,
                    shipping_address_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    CHECK (status <> 'paused' OR pause_until IS NOT NULL)
                );

                CREATE INDEX IF NOT EXISTS idx_subscriptions_status_next_delivery
                    ON subscriptions(status, next_delivery_date);

                CREATE INDEX IF NOT EXISTS idx_subscriptions_customer_id
                    ON subscriptions(customer_id);

                CREATE TABLE IF NOT EXISTS subscription_confirmations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subscription_id INTEGER NOT NULL,
                    token TEXT NOT NULL UNIQUE,
                    scheduled_delivery_date TEXT NOT NULL,
                    is_confirmed INTEGER NOT NULL DEFAULT 0,
                    customer_response TEXT,
                    responded_at TEXT,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    UNIQUE(subscription_id, scheduled_delivery_date),
                    FOREIGN KEY(subscription_id) REFERENCES subscriptions(id)
                );

                CREATE INDEX IF NOT EXISTS idx_confirmations_created_at
                    ON subscription_confirmations(created_at);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # CatalogRepository API -------------------------------------------------
    def create_customer(self, email: str, full_name: Optional[str] = None) -> Customer:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "INSERT INTO customers (email, full_name) VALUES (?, ?)",
                (email.lower(), full_name),
            )
            customer_id = cur.lastrowid
        return Customer(id=customer_id, email=email.lower(), full_name=full_name)

    def create_product(
        self,
        name: str,
        base_price: Decimal,
        image_url: Optional[str] = None,
    ) -> Product:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "INSERT INTO products (name, base_price, image_url) VALUES (?, ?, ?)",
                (name, str(base_price), image_url),
            )
            product_id = cur.lastrowid
        return Product(id=product_id, name=name, base_price=Decimal(base_price), image_url=image_url)

    def get_customer(self, customer_id: int) -> Optional[Customer]:
        row = self._fetch_one("SELECT * FROM customers WHERE id = ?", (customer_id,))
        if not row:
            return None
        return Customer(id=row["id"], email=row["email"], full_name=row["full_name"])

    def get_product(self, product_id: int) -> Optional[Product]:
        row = self._fetch_one("SELECT * FROM products WHERE id = ?", (product_id,))
        if not row:
            return None
        return Product(
            id=row["id"],
            name=row["name"],
            base_price=Decimal(row["base_price"]),
            image_url=row["image_url"],
        )

    # SubscriptionRepository API ---------------------------------------------
    def create_subscription(
        self,
        customer_id: int,
        product_id: int,
        frequency: Frequency,
        quantity: int,
        discount_percent: Decimal,
        start_date: date,
        next_delivery_date: date,
        payment_method_id: Optional[str] = None,
        shipping_address_id: Optional[str] = None,
    ) -> Subscription:
        now = self._now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO subscriptions (
                    customer_id, product_id, frequency, quantity, discount_percent,
                    status, start_date, next_delivery_date, pause_until,
                    payment_method_id, shipping_address_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, ?, ?, ?)
                """,
                (
                    customer_id,
                    product_id,
                    frequency.value,
                    quantity,
                    str(discount_percent),
                    SubscriptionStatus.ACTIVE.value,
                    start_date.isoformat(),
                    next_delivery_date.isoformat(),
                    payment_method_id,
                    shipping_address_id,
                    now,
                    now,
                ),
            )
            subscription_id = cur.lastrowid
            cur = self._conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist subscription.")
        return self._row_to_subscription(row)

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        row = self._fetch_one("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
        return self._row_to_subscription(row) if row else None

    def list_subscriptions_for_customer(self, customer_id: int) -> List[Subscription]:
        rows = self._fetch_all(
            "SELECT * FROM subscriptions WHERE customer_id = ? ORDER BY created_at DESC, id DESC",
            (customer_id,),
        )
        return [self._row_to_subscription(row) for row in rows]

    def find_active_subscriptions_with_next_delivery_date(self, delivery_date: date) -> List[Subscription]:
        rows = self._fetch_all(
            """
            SELECT * FROM subscriptions
            WHERE status = ? AND next_delivery_date = ?
            ORDER BY id ASC
            """,
            (SubscriptionStatus.ACTIVE.value, delivery_date.isoformat()),
        )
        return [self._row_to_subscription(row) for row in rows]

    def save_subscription_state(
        self,
        subscription: Subscription,
        *,
        expected_status: SubscriptionStatus,
    ) -> bool:
        with self._lock, self._conn:
            return self._update_subscription_state(subscription, expected_status)

    def count_subscriptions_by_status(self, status: SubscriptionStatus) -> int:
        return self._count("SELECT COUNT(*) FROM subscriptions WHERE status = ?", (status.value,))

    # ConfirmationRepository API ---------------------------------------------
    def create_confirmation_if_absent(
        self,
        subscription_id: int,
        token: str,
        scheduled_delivery_date: date,
        created_at: datetime,
        expires_at: datetime,
    ) -> Optional[Confirmation]:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO subscription_confirmations (
                    subscription_id, token, scheduled_delivery_date,
                    is_confirmed, created_at, expires_at
                )
                VALUES (?, ?, ?, 0, ?, ?)
                ON CONFLICT(subscription_id, scheduled_delivery_date) DO NOTHING
                """,
                (
                    subscription_id,
                    token,
                    scheduled_delivery_date.isoformat(),
                    self._format_datetime(created_at),
                    self._format_datetime(expires_at),
                ),
            )
            if cur.rowcount == 0:
                return None
            confirmation_id = cur.lastrowid
            cur = self._conn.execute(
                "SELECT * FROM subscription_confirmations WHERE id = ?", (confirmation_id,)
            )
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist confirmation.")
        return self._row_to_confirmation(row)

    def find_confirmation(self, subscription_id: int, scheduled_delivery_date: date) -> Optional[Confirmation]:
        row = self._fetch_one(
            """
            SELECT * FROM subscription_confirmations
            WHERE subscription_id = ? AND scheduled_delivery_date = ?
            """,
            (subscription_id, scheduled_delivery_date.isoformat()),
        )
        return self._row_to_confirmation(row) if row else None

    def get_confirmation(self, confirmation_id: int) -> Optional[Confirmation]:
        row = self._fetch_one("SELECT * FROM subscription_confirmations WHERE id = ?", (confirmation_id,))
        return self._row_to_confirmation(row) if row else None

    def get_confirmation_by_token(self, token: str) -> Optional[Confirmation]:
        row = self._fetch_one("SELECT * FROM subscription_confirmations WHERE token = ?", (token,))
        return self._row_to_confirmation(row) if row else None

    def discard_confirmation(self, confirmation_id: int) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM subscription_confirmations WHERE id = ? AND is_confirmed = 0",
                (confirmation_id,),
            )
            return cur.rowcount > 0

    def reissue_confirmation(
        self,
        confirmation_id: int,
        token: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> Optional[Confirmation]:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE subscription_confirmations
                SET token = ?, created_at = ?, expires_at = ?
                WHERE id = ? AND is_confirmed = 0
                """,
                (
                    token,
                    self._format_datetime(created_at),
                    self._format_datetime(expires_at),
                    confirmation_id,
                ),
            )
            if cur.rowcount == 0:
                return None
            cur = self._conn.execute(
                "SELECT * FROM subscription_confirmations WHERE id = ?", (confirmation_id,)
            )
            row = cur.fetchone()
        return self._row_to_confirmation(row) if row else None

    def record_confirmation_response(
        self,
        confirmation_id: int,
        response: CustomerAction,
        responded_at: datetime,
        subscription: Optional[Subscription] = None,
        expected_status: Optional[SubscriptionStatus] = None,
    ) -> bool:
        stamp = self._format_datetime(responded_at)
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE subscription_confirmations
                SET is_confirmed = 1, customer_response = ?, responded_at = ?
                WHERE id = ? AND is_confirmed = 0 AND expires_at >= ?
                """,
                (response.value, stamp, confirmation_id, stamp),
            )
            if cur.rowcount == 0:
                return False
            if subscription is not None:
                # Raising here rolls back the consumption above.
                if not self._update_subscription_state(
                    subscription, expected_status or subscription.status
                ):
                    raise InvalidTransitionError(
                        f"Subscription {subscription.id} changed status concurrently."
                    )
        return True

    def count_confirmations_created_between(self, start: datetime, end: datetime) -> int:
        return self._count(
            "SELECT COUNT(*) FROM subscription_confirmations WHERE created_at >= ? AND created_at < ?",
            (self._format_datetime(start), self._format_datetime(end)),
        )

    def count_pending_confirmations(self, now: datetime) -> int:
        return self._count(
            "SELECT COUNT(*) FROM subscription_confirmations WHERE is_confirmed = 0 AND expires_at > ?",
            (self._format_datetime(now),),
        )

    def count_confirmed_by_response(self, response: CustomerAction) -> int:
        return self._count(
            """
            SELECT COUNT(*) FROM subscription_confirmations
            WHERE is_confirmed = 1 AND customer_response = ?
            """,
            (response.value,),
        )

    def get_reminder_history(self, subscription_id: int) -> Tuple[int, Optional[datetime]]:
        row = self._fetch_one(
            """
            SELECT COUNT(*) AS total, MAX(created_at) AS last_created_at
            FROM subscription_confirmations
            WHERE subscription_id = ?
            """,
            (subscription_id,),
        )
        if not row or not row["total"]:
            return 0, None
        return row["total"], self._parse_datetime(row["last_created_at"])

    def purge_expired_confirmations(self, older_than: datetime) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM subscription_confirmations WHERE is_confirmed = 0 AND expires_at < ?",
                (self._format_datetime(older_than),),
            )
            return cur.rowcount

    # Helpers ----------------------------------------------------------------
    def _update_subscription_state(
        self,
        subscription: Subscription,
        expected_status: SubscriptionStatus,
    ) -> bool:
        cur = self._conn.execute(
            """
            UPDATE subscriptions
            SET status = ?, pause_until = ?, next_delivery_date = ?, updated_at = ?
            WHERE id = ? AND status = ?
            """,
            (
                subscription.status.value,
                subscription.pause_until.isoformat() if subscription.pause_until else None,
                subscription.next_delivery_date.isoformat(),
                self._format_datetime(subscription.updated_at),
                subscription.id,
                expected_status.value,
            ),
        )
        return cur.rowcount > 0

    def _fetch_one(self, query: str, params: Tuple[Any, ...]) -> Optional[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchone()

    def _fetch_all(self, query: str, params: Tuple[Any, ...]) -> List[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchall()

    def _count(self, query: str, params: Tuple[Any, ...]) -> int:
        with self._lock:
            cur = self._conn.execute(query, params)
            row = cur.fetchone()
        return int(row[0]) if row else 0

    @classmethod
    def _now(cls) -> str:
        return cls._format_datetime(datetime.now(timezone.utc))

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        # Fixed-width UTC text so lexical order matches chronological order.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")

    @staticmethod
    def _parse_datetime(value: str) -> datetime:
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    @staticmethod
    def _parse_date(value: Optional[str]) -> Optional[date]:
        return date.fromisoformat(value) if value else None

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row["id"],
            customer_id=row["customer_id"],
            product_id=row["product_id"],
            frequency=Frequency.parse(row["frequency"]),
            quantity=row["quantity"],
            discount_percent=Decimal(row["discount_percent"]),
            status=SubscriptionStatus.parse(row["status"]),
            start_date=date.fromisoformat(row["start_date"]),
            next_delivery_date=date.fromisoformat(row["next_delivery_date"]),
            pause_until=self._parse_date(row["pause_until"]),
            payment_method_id=row["payment_method_id"],
            shipping_address_id=row["shipping_address_id"],
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_confirmation(self, row: sqlite3.Row) -> Confirmation:
        return Confirmation(
            id=row["id"],
            subscription_id=row["subscription_id"],
            token=row["token"],
            scheduled_delivery_date=date.fromisoformat(row["scheduled_delivery_date"]),
            is_confirmed=bool(row["is_confirmed"]),
            customer_response=CustomerAction.parse(row["customer_response"])
            if row["customer_response"]
            else None,
            responded_at=self._parse_datetime(row["responded_at"]) if row["responded_at"] else None,
            created_at=self._parse_datetime(row["created_at"]),
            expires_at=self._parse_datetime(row["expires_at"]),
        )
