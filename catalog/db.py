"""SQLite document store for catalog products.

Each product is kept as a JSON document in the ``products`` table. The
columns next to the document (slug, name, category) mirror document fields so
lookups and projections can use indexes. Natural ordering is insertion order
(``rowid``).

Every public function performs a single transaction; read-modify-write
operations take the write lock up front (``BEGIN IMMEDIATE``).
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Mapping, Optional, Sequence

from catalog.config import CATEGORY_SUMMARY_FIELDS, DB_PATH, PROJECTABLE_FIELDS
from catalog.models import (
    Product,
    Task,
    new_object_id,
    validate_task_update,
    validate_update,
)

__all__ = [
    "get_connection",
    "init_db",
    "find_all",
    "find_by_category",
    "find_by_slug",
    "find_all_projected",
    "group_first_by_category",
    "create_product",
    "update_product",
    "delete_product",
    "push_task",
    "set_task_fields",
    "remove_task",
    "get_product_count",
    "get_category_counts",
]

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


@contextmanager
def get_connection(db_path: str = DB_PATH) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections."""
    # Ensure directory exists
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def _write_transaction(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Open a connection holding the write lock; commit on success."""
    with get_connection(db_path) as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        conn.commit()


def init_db(db_path: str = DB_PATH) -> None:
    """Initialize the database schema."""
    with get_connection(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                slug TEXT,
                name TEXT NOT NULL,
                category TEXT NOT NULL,
                document TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Indexes for common queries
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_products_slug ON products(slug)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_products_category ON products(category)")

        conn.commit()


def _load(row: sqlite3.Row) -> Document:
    return json.loads(row["document"])


def _fetch_for_update(conn: sqlite3.Connection, product_id: str) -> Optional[Document]:
    row = conn.execute(
        "SELECT document FROM products WHERE id = ?", (str(product_id),)
    ).fetchone()
    return _load(row) if row else None


def _save(conn: sqlite3.Connection, doc: Document) -> None:
    conn.execute(
        """
        UPDATE products
        SET slug = ?, name = ?, category = ?, document = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
        """,
        (doc.get("slug"), doc["name"], doc["category"], json.dumps(doc), doc["_id"]),
    )


def _find_task(doc: Document, task_id: str) -> Optional[Document]:
    for task in doc.get("tasks", []):
        if task.get("_id") == str(task_id):
            return task
    return None


# ---------- QUERIES ----------


def find_all(db_path: str) -> List[Document]:
    """Retrieve every product in natural order."""
    with get_connection(db_path) as conn:
        rows = conn.execute("SELECT document FROM products ORDER BY rowid").fetchall()
        return [_load(row) for row in rows]


def find_by_category(db_path: str, category: str) -> List[Document]:
    """Retrieve products whose stored category equals ``category`` exactly."""
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT document FROM products WHERE category = ? ORDER BY rowid",
            (category,),
        ).fetchall()
        return [_load(row) for row in rows]


def find_by_slug(db_path: str, slug: str) -> Optional[Document]:
    """Return the first product with ``slug``, or None."""
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT document FROM products WHERE slug = ? ORDER BY rowid LIMIT 1",
            (slug,),
        ).fetchone()
        return _load(row) if row else None


def find_all_projected(
    db_path: str,
    fields: Sequence[str],
    category: Optional[str] = None,
) -> List[Document]:
    """Return only ``fields`` of each product, optionally within one category.

    Fields missing from a document are left out of its projection.

    Raises:
        ValueError: if a field is not projectable.
    """
    unknown = [f for f in fields if f not in PROJECTABLE_FIELDS]
    if unknown:
        raise ValueError(f"Cannot project fields {unknown}. Must be among {list(PROJECTABLE_FIELDS)}")

    # Column names come from the whitelist above
    columns = ", ".join(PROJECTABLE_FIELDS[f] for f in fields)
    query = f"SELECT {columns} FROM products"
    params: List[Any] = []
    if category is not None:
        query += " WHERE category = ?"
        params.append(category)
    query += " ORDER BY rowid"

    with get_connection(db_path) as conn:
        rows = conn.execute(query, params).fetchall()
        return [
            {
                f: row[PROJECTABLE_FIELDS[f]]
                for f in fields
                if row[PROJECTABLE_FIELDS[f]] is not None
            }
            for row in rows
        ]


def group_first_by_category(db_path: str) -> List[Document]:
    """Return one summary per distinct category.

    The representative of each group is the first stored product of that
    category. Summaries carry ``_id``, ``slug``, ``category`` and
    ``categoryImage`` and are ordered by their representative.
    """
    with get_connection(db_path) as conn:
        rows = conn.execute("""
            SELECT p.document
            FROM products p
            JOIN (
                SELECT category, MIN(rowid) AS first_rowid
                FROM products
                GROUP BY category
            ) g ON p.rowid = g.first_rowid
            ORDER BY p.rowid
        """).fetchall()

    summaries = []
    for row in rows:
        doc = _load(row)
        summaries.append({k: doc[k] for k in CATEGORY_SUMMARY_FIELDS if k in doc})
    return summaries


def get_product_count(db_path: str, category: Optional[str] = None) -> int:
    """Get the total number of products, optionally within one category."""
    with get_connection(db_path) as conn:
        cursor = conn.cursor()
        if category is not None:
            cursor.execute("SELECT COUNT(*) as count FROM products WHERE category = ?", (category,))
        else:
            cursor.execute("SELECT COUNT(*) as count FROM products")
        return cursor.fetchone()["count"]


def get_category_counts(db_path: str) -> Dict[str, int]:
    """Get the number of products per category."""
    with get_connection(db_path) as conn:
        rows = conn.execute("""
            SELECT category, COUNT(*) as count
            FROM products
            GROUP BY category
            ORDER BY category
        """).fetchall()
        return {row["category"]: row["count"] for row in rows}


# ---------- MUTATIONS ----------


def create_product(
    db_path: str,
    fields: Mapping[str, Any],
    owner: Optional[str] = None,
) -> Document:
    """Validate ``fields`` and insert a new product.

    Args:
        db_path: Path to database.
        fields: Incoming product payload.
        owner: Identity id of the creator, if the request was authenticated.

    Returns:
        The stored document including its generated ``_id``.

    Raises:
        ValidationError: if required fields are missing or cannot be cast.
    """
    product = Product.from_dict(fields, owner=owner)
    product.id = new_object_id()
    doc = product.to_document()

    with get_connection(db_path) as conn:
        conn.execute(
            """
            INSERT INTO products (id, slug, name, category, document)
            VALUES (?, ?, ?, ?, ?)
            """,
            (product.id, product.slug, product.name, product.category, json.dumps(doc)),
        )
        conn.commit()

    logger.debug(f"Created product {product.id} in category {product.category}")
    return doc


def update_product(db_path: str, product_id: str, fields: Mapping[str, Any]) -> Optional[Document]:
    """Replace the supplied updatable fields of a product.

    Returns:
        The updated document, or None if no product has ``product_id``.
    """
    update = validate_update(fields)

    with _write_transaction(db_path) as conn:
        doc = _fetch_for_update(conn, product_id)
        if doc is None:
            return None
        doc.update(update)
        _save(conn, doc)
    return doc


def delete_product(db_path: str, product_id: str) -> Optional[Document]:
    """Remove a product.

    Returns:
        The deleted document, or None if no product has ``product_id``.
    """
    with _write_transaction(db_path) as conn:
        doc = _fetch_for_update(conn, product_id)
        if doc is None:
            return None
        conn.execute("DELETE FROM products WHERE id = ?", (doc["_id"],))
    return doc


def push_task(db_path: str, product_id: str, task: Mapping[str, Any]) -> Optional[Document]:
    """Append a task to a product's ``tasks`` array.

    Returns:
        The updated product, or None if no product has ``product_id``.

    Raises:
        ValidationError: if the task has no title.
    """
    new_task = Task.from_dict(task).to_dict()

    with _write_transaction(db_path) as conn:
        doc = _fetch_for_update(conn, product_id)
        if doc is None:
            return None
        doc.setdefault("tasks", []).append(new_task)
        _save(conn, doc)
    return doc


def set_task_fields(
    db_path: str,
    product_id: str,
    task_id: str,
    fields: Mapping[str, Any],
) -> bool:
    """Overwrite the supplied fields of one task in place.

    Returns:
        True if both the product and the task were matched.
    """
    update = validate_task_update(fields)

    with _write_transaction(db_path) as conn:
        doc = _fetch_for_update(conn, product_id)
        task = _find_task(doc, task_id) if doc is not None else None
        if task is None:
            return False
        task.update(update)
        _save(conn, doc)
    return True


def remove_task(db_path: str, product_id: str, task_id: str) -> bool:
    """Pull the task with ``task_id`` from a product's ``tasks`` array.

    Returns:
        True if an element was removed.
    """
    with _write_transaction(db_path) as conn:
        doc = _fetch_for_update(conn, product_id)
        if doc is None:
            return False
        tasks = doc.get("tasks", [])
        remaining = [t for t in tasks if t.get("_id") != str(task_id)]
        if len(remaining) == len(tasks):
            return False
        doc["tasks"] = remaining
        _save(conn, doc)
    return True
