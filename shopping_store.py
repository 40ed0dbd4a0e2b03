"""Shopping list persistence with SQLite.

One record per week, keyed by the week-start date string. Saving a week
replaces whatever was stored for it (delete + recreate in one transaction), so
every item comes back unchecked with a new id. Concurrent saves for the same
week are last-writer-wins.
"""
import json
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any

from menu_models import ShoppingList
from tools.logging_utils import get_logger

logger = get_logger(__name__)

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS shopping_lists (
        week_key TEXT PRIMARY KEY,
        menus_json TEXT NOT NULL,
        active_days_json TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    CREATE TABLE IF NOT EXISTS ingredient_items (
        id TEXT PRIMARY KEY,
        week_key TEXT NOT NULL REFERENCES shopping_lists(week_key) ON DELETE CASCADE,
        position INTEGER NOT NULL,
        name TEXT NOT NULL,
        amount TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT '',
        used_days_json TEXT NOT NULL DEFAULT '[]',
        is_checked INTEGER NOT NULL DEFAULT 0
    );
    CREATE INDEX IF NOT EXISTS idx_items_week ON ingredient_items(week_key);
'''


def _item_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        'id': row['id'],
        'name': row['name'],
        'amount': row['amount'],
        'category': row['category'],
        'usedDays': json.loads(row['used_days_json']),
        'isChecked': bool(row['is_checked']),
    }


class ShoppingListStore:
    """Week-keyed shopping list store.

    Use ShoppingListStore.instance() for the process-wide store; construct
    directly with a db_path for isolated stores (tests, scripts).
    """

    _instance: Optional["ShoppingListStore"] = None
    _instance_lock = threading.Lock()

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @classmethod
    def instance(cls) -> "ShoppingListStore":
        """Create the shared store on first use, then keep returning it."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    from config import DB_PATH
                    cls._instance = cls(DB_PATH)
                    logger.info(f"💾 Shopping list store opened at {DB_PATH}")
        return cls._instance

    @classmethod
    def reset_instance(cls):
        with cls._instance_lock:
            cls._instance = None

    def _get_db(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        return conn

    def _init_db(self):
        conn = self._get_db()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def save_week(self, shopping_list: ShoppingList, active_day_keys: List[str]) -> List[Dict[str, Any]]:
        """Replace the stored list for shopping_list.week_key.

        Returns:
            The saved ingredient items, with their new ids, all unchecked.
        """
        week_key = shopping_list.week_key
        now = datetime.now().isoformat()
        conn = self._get_db()
        try:
            with conn:
                conn.execute('DELETE FROM ingredient_items WHERE week_key = ?', (week_key,))
                conn.execute('DELETE FROM shopping_lists WHERE week_key = ?', (week_key,))
                conn.execute(
                    'INSERT INTO shopping_lists (week_key, menus_json, active_days_json, created_at) '
                    'VALUES (?, ?, ?, ?)',
                    (
                        week_key,
                        json.dumps([m.to_dict() for m in shopping_list.menus], ensure_ascii=False),
                        json.dumps(list(active_day_keys), ensure_ascii=False),
                        now,
                    )
                )
                conn.executemany(
                    'INSERT INTO ingredient_items '
                    '(id, week_key, position, name, amount, category, used_days_json, is_checked) '
                    'VALUES (?, ?, ?, ?, ?, ?, ?, 0)',
                    [
                        (
                            str(uuid.uuid4()),
                            week_key,
                            position,
                            item.name,
                            item.amount,
                            item.category,
                            json.dumps(list(item.used_days), ensure_ascii=False),
                        )
                        for position, item in enumerate(shopping_list.ingredients)
                    ]
                )
            rows = conn.execute(
                'SELECT * FROM ingredient_items WHERE week_key = ? ORDER BY position',
                (week_key,)
            ).fetchall()
        finally:
            conn.close()

        logger.info(f"💾 Saved shopping list for {week_key} ({len(rows)} items)")
        return [_item_from_row(row) for row in rows]

    def get_week(self, week_key: str) -> Optional[Dict[str, Any]]:
        """Stored menus, active days and items for a week, or None if not found."""
        conn = self._get_db()
        try:
            row = conn.execute(
                'SELECT * FROM shopping_lists WHERE week_key = ?', (week_key,)
            ).fetchone()
            if row is None:
                return None
            items = conn.execute(
                'SELECT * FROM ingredient_items WHERE week_key = ? ORDER BY position',
                (week_key,)
            ).fetchall()
        finally:
            conn.close()

        return {
            'menus': json.loads(row['menus_json']),
            'activeDayKeys': json.loads(row['active_days_json']),
            'ingredients': [_item_from_row(item) for item in items],
        }

    def set_item_checked(self, item_id: str, is_checked: bool) -> Optional[Dict[str, Any]]:
        """Update one item's checked flag. Returns the item, or None for an unknown id."""
        conn = self._get_db()
        try:
            with conn:
                cursor = conn.execute(
                    'UPDATE ingredient_items SET is_checked = ? WHERE id = ?',
                    (1 if is_checked else 0, item_id)
                )
            if cursor.rowcount == 0:
                return None
            row = conn.execute('SELECT * FROM ingredient_items WHERE id = ?', (item_id,)).fetchone()
        finally:
            conn.close()
        return _item_from_row(row)

