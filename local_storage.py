import re
import sqlite3
from pathlib import Path
from typing import Any

from utils.schema import TABLE_INDEXES, TABLES


def _to_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    return str(value)


class Table:
    """
    One collection in the SQLite store. Every column is TEXT; callers convert.

    Rows are plain dicts keyed by column name. Methods that return rows with
    the internal rowid put it under '_id'.
    """

    def __init__(self, database: 'SecuryFlexDatabase', name: str, columns: list[str]):
        self._database = database
        self.name = name
        self.columns = columns

    def _get_connection(self):
        return self._database._get_connection()

    def _row_to_dict(self, row) -> dict[str, str]:
        record = {'_id': row[0]}
        for i, col in enumerate(self.columns):
            value = row[i + 1]
            record[col] = str(value) if value is not None else ''
        return record

    def _where(self, filters: dict[str, Any]) -> tuple[str, list[str]]:
        if not filters:
            return '', []
        clause = ' AND '.join([f'"{k}" = ?' for k in filters.keys()])
        return f' WHERE {clause}', [_to_text(v) for v in filters.values()]

    def get_all_rows(self) -> list[dict[str, str]]:
        """All rows including the internal '_id'."""
        return self.find({})

    def get_all_records(self) -> list[dict[str, str]]:
        """All rows without '_id'."""
        return [{k: v for k, v in row.items() if k != '_id'} for row in self.get_all_rows()]

    def find(self, filters: dict[str, Any]) -> list[dict[str, str]]:
        """Rows whose columns equal every value in filters (ordered by insertion)."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            columns = ', '.join([f'"{col}"' for col in self.columns])
            where, values = self._where(filters)
            cursor.execute(f'SELECT id, {columns} FROM "{self.name}"{where} ORDER BY id', values)
            return [self._row_to_dict(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def find_one(self, filters: dict[str, Any]) -> dict[str, str] | None:
        rows = self.find(filters)
        return rows[0] if rows else None

    def count(self, filters: dict[str, Any] | None = None) -> int:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            where, values = self._where(filters or {})
            cursor.execute(f'SELECT COUNT(*) FROM "{self.name}"{where}', values)
            return cursor.fetchone()[0]
        finally:
            conn.close()

    def add_rows(self, rows: list[dict[str, Any]]):
        """
        Insert rows. Missing columns are stored as empty strings.

        Args:
            rows: List of dictionaries with column names as keys
        """
        if not rows:
            return

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            columns = ', '.join([f'"{col}"' for col in self.columns])
            placeholders = ', '.join(['?' for _ in self.columns])
            insert_sql = f'INSERT INTO "{self.name}" ({columns}) VALUES ({placeholders})'
            for row in rows:
                cursor.execute(insert_sql, [_to_text(row.get(col)) for col in self.columns])
            conn.commit()
        finally:
            conn.close()

    def update_by_fields(self, filters: dict[str, Any], updates: dict[str, Any]) -> int:
        """
        Update every row matching filters.

        Returns:
            Number of rows affected
        """
        if not filters or not updates:
            return 0

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            set_clause = ', '.join([f'"{k}" = ?' for k in updates.keys()])
            where, where_values = self._where(filters)
            values = [_to_text(v) for v in updates.values()] + where_values
            cursor.execute(f'UPDATE "{self.name}" SET {set_clause}{where}', values)
            row_count = cursor.rowcount
            conn.commit()
            return row_count
        finally:
            conn.close()

    def delete_by_fields(self, filters: dict[str, Any]) -> int:
        if not filters:
            return 0

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            where, values = self._where(filters)
            cursor.execute(f'DELETE FROM "{self.name}"{where}', values)
            row_count = cursor.rowcount
            conn.commit()
            return row_count
        finally:
            conn.close()


class JobTable(Table):
    """Jobs table with key-based helpers used by the job repository."""

    def add_jobs(self, jobs: list[dict[str, Any]]):
        self.add_rows(jobs)

    def update_job_by_key(self, job_id: str, company: str, updates: dict[str, Any]) -> int:
        """
        Update a job by its job id and company name.

        Returns:
            Number of rows affected
        """
        return self.update_by_fields({'Job ID': job_id, 'Company Name': company}, updates)


class SecuryFlexDatabase:
    """
    SQLite database holding every collection plus a key/value store.

    Note: This is a single-threaded application, so no thread locks are needed.
    SQLite connections are created per call with check_same_thread=False.
    """

    def __init__(self, db_path: str, tables: dict[str, list[str]] | None = None):
        """
        Initialize the database.

        Args:
            db_path: Path to the SQLite database file
            tables: Mapping of table name to column names (defaults to utils.schema.TABLES)
        """
        self.db_path = Path(db_path)
        self._schemas = dict(tables or TABLES)
        self._tables: dict[str, Table] = {}
        for name, columns in self._schemas.items():
            table_cls = JobTable if name == 'jobs' else Table
            self._tables[name] = table_cls(self, name, columns)
        self._ensure_database_exists()

    def _get_connection(self):
        """Get a database connection."""
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_database_exists(self):
        """Ensure the database exists with every table, column and index."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            for name, columns in self._schemas.items():
                columns_sql = ', '.join([f'"{col}" TEXT' for col in columns])
                cursor.execute(f'''
                    CREATE TABLE IF NOT EXISTS "{name}" (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        {columns_sql}
                    )
                ''')

                # Add any missing columns (schema migration)
                cursor.execute(f'PRAGMA table_info("{name}")')
                existing_columns = {row[1] for row in cursor.fetchall()}
                for col in columns:
                    if col not in existing_columns:
                        cursor.execute(f'ALTER TABLE "{name}" ADD COLUMN "{col}" TEXT')

                for index_columns in TABLE_INDEXES.get(name, []):
                    index_name = 'idx_' + name + '_' + '_'.join(c.lower().replace(' ', '_') for c in index_columns)
                    cols_sql = ', '.join([f'"{c}"' for c in index_columns])
                    cursor.execute(f'CREATE INDEX IF NOT EXISTS {index_name} ON "{name}"({cols_sql})')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            ''')
            conn.commit()
        finally:
            conn.close()

    def table(self, name: str) -> Table:
        try:
            return self._tables[name]
        except KeyError:
            raise ValueError(f"Unknown table: {name!r}") from None

    @property
    def jobs(self) -> JobTable:
        return self._tables['jobs']

    # =========================================================================
    # Key/value store (profile cache, preferences, counters)
    # =========================================================================

    def get_value(self, key: str, default: str | None = None) -> str | None:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute('SELECT value FROM kv_store WHERE key = ?', (key,))
            row = cursor.fetchone()
            return row[0] if row is not None else default
        finally:
            conn.close()

    def set_value(self, key: str, value: Any):
        conn = self._get_connection()
        try:
            conn.execute(
                'INSERT INTO kv_store (key, value) VALUES (?, ?) '
                'ON CONFLICT(key) DO UPDATE SET value = excluded.value',
                (key, _to_text(value)),
            )
            conn.commit()
        finally:
            conn.close()

    def set_values(self, values: dict[str, Any]):
        """Write several keys in one transaction; on error none of them change."""
        conn = self._get_connection()
        try:
            with conn:
                conn.executemany(
                    'INSERT INTO kv_store (key, value) VALUES (?, ?) '
                    'ON CONFLICT(key) DO UPDATE SET value = excluded.value',
                    [(key, _to_text(value)) for key, value in values.items()],
                )
        finally:
            conn.close()

    def delete_value(self, key: str) -> bool:
        conn = self._get_connection()
        try:
            cursor = conn.execute('DELETE FROM kv_store WHERE key = ?', (key,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def keys_with_prefix(self, prefix: str) -> list[str]:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "SELECT key FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                (prefix.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_') + '%',),
            )
            return [row[0] for row in cursor.fetchall()]
        finally:
            conn.close()


# =========================================================================
# File storage functions
# =========================================================================

def _safe_filename(name: str) -> str:
    """Reduce a user-supplied id to a plain file name (no separators or dot-dot)."""
    cleaned = re.sub(r'[^A-Za-z0-9._-]+', '_', str(name)).strip('._')
    return cleaned or 'unnamed'


def ensure_local_directories():
    """Ensure local storage directories exist."""
    base_dir = Path('local_data')
    invoices_dir = base_dir / 'invoices'
    exports_dir = base_dir / 'exports'

    invoices_dir.mkdir(parents=True, exist_ok=True)
    exports_dir.mkdir(parents=True, exist_ok=True)

    return base_dir, invoices_dir, exports_dir


def save_invoice_local(invoice_text: str, invoice_number: str) -> str:
    """Save a rendered invoice to the local invoices directory."""
    _, invoices_dir, _ = ensure_local_directories()

    stem = invoice_number[:-4] if invoice_number.endswith('.txt') else invoice_number
    filename = f"{_safe_filename(stem)}.txt"
    file_path = invoices_dir / filename

    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(invoice_text)

    return str(Path("local_data") / "invoices" / filename)


def save_profile_export_local(export_json: str, user_id: str) -> str:
    """Save a profile export (JSON text) to the local exports directory."""
    _, _, exports_dir = ensure_local_directories()

    filename = f"profile_{_safe_filename(user_id)}.json"
    with open(exports_dir / filename, 'w', encoding='utf-8') as f:
        f.write(export_json)

    return str(Path("local_data") / "exports" / filename)
