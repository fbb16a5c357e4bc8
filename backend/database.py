import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Dict, Iterable
from contextlib import contextmanager
import logging

from config import settings

logger = logging.getLogger(__name__)

DATABASE_PATH = settings.database_path

DATETIME_FIELDS = (
    "created_at", "updated_at", "purchase_date", "transaction_date",
    "refresh_token_expiry_time",
)
BOOL_FIELDS = ("is_active", "is_deleted", "is_default", "email_confirmed")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC, leave naive values alone"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_db(value):
    if isinstance(value, datetime):
        return to_naive_utc(value).isoformat()
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _row_to_dict(row: sqlite3.Row) -> Dict:
    data = dict(row)
    for key in DATETIME_FIELDS:
        if data.get(key):
            data[key] = datetime.fromisoformat(data[key])
    for key in BOOL_FIELDS:
        if key in data and data[key] is not None:
            data[key] = bool(data[key])
    return data


@contextmanager
def get_db():
    """Context manager for database connections"""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        raise e
    finally:
        conn.close()


def init_database():
    """Initialize database tables"""
    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                normalized_email TEXT UNIQUE NOT NULL,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'User',
                is_active INTEGER DEFAULT 1,
                is_deleted INTEGER DEFAULT 0,
                email_confirmed INTEGER DEFAULT 0,
                refresh_token TEXT,
                refresh_token_expiry_time TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS portfolios (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL REFERENCES users(id),
                name TEXT NOT NULL DEFAULT 'Default Portfolio',
                description TEXT,
                is_default INTEGER DEFAULT 0,
                is_deleted INTEGER DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS investments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                portfolio_id INTEGER NOT NULL REFERENCES portfolios(id),
                user_id TEXT NOT NULL REFERENCES users(id),
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                initial_amount REAL NOT NULL,
                current_value REAL NOT NULL,
                quantity REAL,
                average_price_per_unit REAL,
                purchase_date TEXT NOT NULL,
                broker_platform TEXT,
                notes TEXT,
                status TEXT NOT NULL DEFAULT 'Active',
                is_deleted INTEGER DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                investment_id INTEGER NOT NULL REFERENCES investments(id),
                type TEXT NOT NULL DEFAULT 'Buy',
                quantity REAL NOT NULL,
                price_per_unit REAL NOT NULL,
                amount REAL NOT NULL,
                transaction_date TEXT NOT NULL,
                notes TEXT,
                is_deleted INTEGER DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS activity_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                action TEXT NOT NULL,
                entity_type TEXT NOT NULL,
                entity_id TEXT,
                details TEXT,
                created_at TEXT NOT NULL
            )
        """)

        # Create indexes
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_portfolios_user ON portfolios(user_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_investments_user ON investments(user_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_investments_portfolio ON investments(portfolio_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_transactions_investment ON transactions(investment_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(transaction_date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_activity_logs_user ON activity_logs(user_id)")

        conn.commit()
        logger.info("Database initialized successfully")


def migrate_database():
    """Apply database migrations for existing databases"""
    with get_db() as conn:
        cursor = conn.cursor()

        # Databases created before default portfolios existed
        cursor.execute("PRAGMA table_info(portfolios)")
        columns = [col[1] for col in cursor.fetchall()]

        if 'is_default' not in columns:
            logger.info("Adding is_default column to portfolios table...")
            cursor.execute("""
                ALTER TABLE portfolios
                ADD COLUMN is_default INTEGER DEFAULT 0
            """)

            # Backfill: the oldest portfolio of each user becomes the default
            cursor.execute("""
                UPDATE portfolios
                SET is_default = 1
                WHERE id IN (SELECT MIN(id) FROM portfolios WHERE is_deleted = 0 GROUP BY user_id)
            """)
            logger.info(f"Marked {cursor.rowcount} existing portfolios as default")

        conn.commit()
        logger.info("Database migration completed successfully")


def _update(table: str, row_id, fields: Dict, touch: bool = True) -> int:
    """Update columns of a single row; column names come from service code only"""
    if touch:
        fields = {**fields, "updated_at": utcnow()}
    if not fields:
        return 0
    assignments = ", ".join(f"{column} = ?" for column in fields)
    params = [_to_db(value) for value in fields.values()] + [row_id]
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", params)
        return cursor.rowcount


def _placeholders(values: Iterable) -> str:
    return ", ".join("?" for _ in values)


# Users

def create_user(email: str, first_name: str, last_name: str, password_hash: str,
                role: str = "User", email_confirmed: bool = True) -> Dict:
    """Insert a user and return it"""
    user_id = str(uuid.uuid4())
    now = utcnow()
    with get_db() as conn:
        conn.execute("""
            INSERT INTO users
            (id, email, normalized_email, first_name, last_name, password_hash, role,
             is_active, is_deleted, email_confirmed, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, 1, 0, ?, ?)
        """, (user_id, email, email.strip().upper(), first_name, last_name, password_hash,
              role, _to_db(email_confirmed), _to_db(now)))
    logger.info(f"Created user {user_id} ({email})")
    return get_user_by_id(user_id)


def get_user_by_id(user_id: str, include_deleted: bool = False) -> Optional[Dict]:
    with get_db() as conn:
        query = "SELECT * FROM users WHERE id = ?"
        if not include_deleted:
            query += " AND is_deleted = 0"
        row = conn.execute(query, (user_id,)).fetchone()
        return _row_to_dict(row) if row else None


def get_user_by_email(email: str) -> Optional[Dict]:
    """Look up a user by email, case-insensitively, including deleted accounts"""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE normalized_email = ?", (email.strip().upper(),)
        ).fetchone()
        return _row_to_dict(row) if row else None


def get_user_by_refresh_token(refresh_token: str) -> Optional[Dict]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE refresh_token = ? AND is_deleted = 0", (refresh_token,)
        ).fetchone()
        return _row_to_dict(row) if row else None


def list_users() -> List[Dict]:
    """All non-deleted users, newest first"""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM users WHERE is_deleted = 0 ORDER BY created_at DESC"
        ).fetchall()
        return [_row_to_dict(row) for row in rows]


def update_user(user_id: str, fields: Dict) -> int:
    if "email" in fields:
        fields = {**fields, "normalized_email": fields["email"].strip().upper()}
    return _update("users", user_id, fields)


def count_users() -> int:
    with get_db() as conn:
        return conn.execute("SELECT COUNT(*) FROM users WHERE is_deleted = 0").fetchone()[0]


# Portfolios

PORTFOLIO_SELECT = """
    SELECT p.*,
        COALESCE(SUM(i.initial_amount), 0) AS total_invested,
        COALESCE(SUM(i.current_value), 0) AS current_value,
        COUNT(i.id) AS total_investments
    FROM portfolios p
    LEFT JOIN investments i ON i.portfolio_id = p.id AND i.is_deleted = 0
"""


def create_portfolio(user_id: str, name: str, description: Optional[str] = None,
                     is_default: bool = False) -> Dict:
    """Insert a portfolio and return it with its totals"""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO portfolios (user_id, name, description, is_default, is_deleted, created_at)
            VALUES (?, ?, ?, ?, 0, ?)
        """, (user_id, name, description, _to_db(is_default), _to_db(utcnow())))
        portfolio_id = cursor.lastrowid
    logger.info(f"Created portfolio {portfolio_id} for user {user_id}")
    return get_portfolio(portfolio_id)


def get_portfolio(portfolio_id: int) -> Optional[Dict]:
    with get_db() as conn:
        row = conn.execute(
            PORTFOLIO_SELECT + " WHERE p.id = ? AND p.is_deleted = 0 GROUP BY p.id",
            (portfolio_id,)
        ).fetchone()
        return _row_to_dict(row) if row else None


def list_portfolios(user_id: Optional[str] = None) -> List[Dict]:
    """Non-deleted portfolios with investment totals, newest first"""
    query = PORTFOLIO_SELECT + " WHERE p.is_deleted = 0"
    params = []
    if user_id is not None:
        query += " AND p.user_id = ?"
        params.append(user_id)
    query += " GROUP BY p.id ORDER BY p.created_at DESC, p.id DESC"
    with get_db() as conn:
        return [_row_to_dict(row) for row in conn.execute(query, params).fetchall()]


def get_default_portfolio(user_id: str) -> Optional[Dict]:
    with get_db() as conn:
        row = conn.execute(
            PORTFOLIO_SELECT + """
            WHERE p.user_id = ? AND p.is_default = 1 AND p.is_deleted = 0
            GROUP BY p.id ORDER BY p.id LIMIT 1
            """,
            (user_id,)
        ).fetchone()
        return _row_to_dict(row) if row else None


def update_portfolio(portfolio_id: int, fields: Dict) -> int:
    return _update("portfolios", portfolio_id, fields)


def count_portfolios(user_id: Optional[str] = None) -> int:
    query = "SELECT COUNT(*) FROM portfolios WHERE is_deleted = 0"
    params = []
    if user_id is not None:
        query += " AND user_id = ?"
        params.append(user_id)
    with get_db() as conn:
        return conn.execute(query, params).fetchone()[0]


# Investments

INVESTMENT_SELECT = """
    SELECT i.*, p.name AS portfolio_name
    FROM investments i
    LEFT JOIN portfolios p ON p.id = i.portfolio_id
"""


def create_investment(investment: Dict) -> Dict:
    """Insert an investment and return it"""
    now = utcnow()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO investments
            (portfolio_id, user_id, name, type, initial_amount, current_value, quantity,
             average_price_per_unit, purchase_date, broker_platform, notes, status,
             is_deleted, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
        """, (
            investment['portfolio_id'],
            investment['user_id'],
            investment['name'],
            investment['type'],
            investment['initial_amount'],
            investment['current_value'],
            investment.get('quantity'),
            investment.get('average_price_per_unit'),
            _to_db(investment['purchase_date']),
            investment.get('broker_platform'),
            investment.get('notes'),
            investment.get('status', 'Active'),
            _to_db(now)
        ))
        investment_id = cursor.lastrowid
    logger.info(f"Created investment {investment_id} for user {investment['user_id']}")
    return get_investment(investment_id)


def get_investment(investment_id: int) -> Optional[Dict]:
    with get_db() as conn:
        row = conn.execute(
            INVESTMENT_SELECT + " WHERE i.id = ? AND i.is_deleted = 0", (investment_id,)
        ).fetchone()
        return _row_to_dict(row) if row else None


def list_investments(user_id: Optional[str] = None, portfolio_id: Optional[int] = None,
                     investment_ids: Optional[List[int]] = None) -> List[Dict]:
    """Non-deleted investments, newest first"""
    query = INVESTMENT_SELECT + " WHERE i.is_deleted = 0"
    params: List = []
    if user_id is not None:
        query += " AND i.user_id = ?"
        params.append(user_id)
    if portfolio_id is not None:
        query += " AND i.portfolio_id = ?"
        params.append(portfolio_id)
    if investment_ids is not None:
        if not investment_ids:
            return []
        query += f" AND i.id IN ({_placeholders(investment_ids)})"
        params.extend(investment_ids)
    query += " ORDER BY i.created_at DESC, i.id DESC"
    with get_db() as conn:
        return [_row_to_dict(row) for row in conn.execute(query, params).fetchall()]


def update_investment(investment_id: int, fields: Dict) -> int:
    return _update("investments", investment_id, fields)


def soft_delete_investments(investment_ids: List[int]) -> int:
    if not investment_ids:
        return 0
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            f"""
            UPDATE investments SET is_deleted = 1, updated_at = ?
            WHERE is_deleted = 0 AND id IN ({_placeholders(investment_ids)})
            """,
            [_to_db(utcnow())] + list(investment_ids)
        )
        deleted = cursor.rowcount
    logger.info(f"Soft-deleted {deleted} investments")
    return deleted


def count_investments(portfolio_id: Optional[int] = None) -> int:
    query = "SELECT COUNT(*) FROM investments WHERE is_deleted = 0"
    params = []
    if portfolio_id is not None:
        query += " AND portfolio_id = ?"
        params.append(portfolio_id)
    with get_db() as conn:
        return conn.execute(query, params).fetchone()[0]


# Transactions

TRANSACTION_SELECT = """
    SELECT t.*, i.name AS investment_name, i.type AS investment_type, i.user_id AS user_id
    FROM transactions t
    LEFT JOIN investments i ON i.id = t.investment_id
"""


def get_transaction(transaction_id: int) -> Optional[Dict]:
    with get_db() as conn:
        row = conn.execute(
            TRANSACTION_SELECT + " WHERE t.id = ? AND t.is_deleted = 0", (transaction_id,)
        ).fetchone()
        return _row_to_dict(row) if row else None


def list_transactions(user_id: Optional[str] = None, investment_id: Optional[int] = None,
                      include_deleted_investments: bool = False) -> List[Dict]:
    """Non-deleted transactions, newest first"""
    query = TRANSACTION_SELECT + " WHERE t.is_deleted = 0"
    params: List = []
    if not include_deleted_investments:
        query += " AND i.is_deleted = 0"
    if user_id is not None:
        query += " AND i.user_id = ?"
        params.append(user_id)
    if investment_id is not None:
        query += " AND t.investment_id = ?"
        params.append(investment_id)
    query += " ORDER BY t.transaction_date DESC, t.id DESC"
    with get_db() as conn:
        return [_row_to_dict(row) for row in conn.execute(query, params).fetchall()]


def create_transaction(transaction: Dict, apply_changes: Callable[[Optional[Dict]], Dict]) -> Dict:
    """
    Insert a transaction and apply its effect on the investment atomically

    The investment row is read under a write lock and handed to
    apply_changes (None when it is missing or deleted), which returns the
    investment columns to update or raises to abort.
    """
    now = utcnow()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        row = cursor.execute(
            "SELECT * FROM investments WHERE id = ? AND is_deleted = 0",
            (transaction['investment_id'],)
        ).fetchone()
        investment_updates = apply_changes(_row_to_dict(row) if row else None)

        cursor.execute("""
            INSERT INTO transactions
            (investment_id, type, quantity, price_per_unit, amount, transaction_date, notes,
             is_deleted, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
        """, (
            transaction['investment_id'],
            transaction['type'],
            transaction['quantity'],
            transaction['price_per_unit'],
            transaction['amount'],
            _to_db(transaction['transaction_date']),
            transaction.get('notes'),
            _to_db(now)
        ))
        transaction_id = cursor.lastrowid

        fields = {**investment_updates, "updated_at": now}
        assignments = ", ".join(f"{column} = ?" for column in fields)
        cursor.execute(
            f"UPDATE investments SET {assignments} WHERE id = ?",
            [_to_db(value) for value in fields.values()] + [transaction['investment_id']]
        )

    logger.info(f"Created {transaction['type']} transaction {transaction_id} "
                f"for investment {transaction['investment_id']}")
    return get_transaction(transaction_id)


# Activity logs

def insert_activity_log(user_id: str, action: str, entity_type: str,
                        entity_id: Optional[str] = None, details: Optional[str] = None) -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO activity_logs (user_id, action, entity_type, entity_id, details, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (user_id, action, entity_type, entity_id, details, _to_db(utcnow())))
        return cursor.lastrowid


def list_activity_logs(user_id: Optional[str] = None, limit: Optional[int] = None,
                       offset: int = 0) -> List[Dict]:
    """Activity logs joined with the acting user, newest first"""
    query = """
        SELECT a.*, u.email AS user_email, u.first_name AS user_first_name,
            u.last_name AS user_last_name
        FROM activity_logs a
        LEFT JOIN users u ON u.id = a.user_id
    """
    params: List = []
    if user_id is not None:
        query += " WHERE a.user_id = ?"
        params.append(user_id)
    query += " ORDER BY a.created_at DESC, a.id DESC"
    if limit is not None:
        query += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])
    with get_db() as conn:
        return [_row_to_dict(row) for row in conn.execute(query, params).fetchall()]


def count_activity_logs(user_id: Optional[str] = None) -> int:
    query = "SELECT COUNT(*) FROM activity_logs"
    params = []
    if user_id is not None:
        query += " WHERE user_id = ?"
        params.append(user_id)
    with get_db() as conn:
        return conn.execute(query, params).fetchone()[0]
