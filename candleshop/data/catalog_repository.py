from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Iterable, List, Optional

from ..errors import InternalError
from ..models.shop_models import Category, Collection, Color, Product, Scent
from .database import create_connection, format_timestamp, parse_timestamp


_PRODUCT_COLUMNS = """
    id,
    name,
    description,
    price,
    image_url,
    category_id,
    stock,
    featured,
    has_color_options,
    allow_multiple_colors,
    active,
    created_at
"""


def _ensure_junction_tables(connection: sqlite3.Connection) -> None:
    connection.executescript(
        """
        CREATE TABLE IF NOT EXISTS product_scents (
            product_id INTEGER NOT NULL,
            scent_id INTEGER NOT NULL,
            PRIMARY KEY (product_id, scent_id),
            FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE,
            FOREIGN KEY(scent_id) REFERENCES scents(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS product_colors (
            product_id INTEGER NOT NULL,
            color_id INTEGER NOT NULL,
            PRIMARY KEY (product_id, color_id),
            FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE,
            FOREIGN KEY(color_id) REFERENCES colors(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS product_collections (
            product_id INTEGER NOT NULL,
            collection_id INTEGER NOT NULL,
            PRIMARY KEY (product_id, collection_id),
            FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE,
            FOREIGN KEY(collection_id) REFERENCES collections(id) ON DELETE CASCADE
        );
        """
    )


# Products

def create_product(product: Product) -> Product:
    with create_connection() as connection:
        cursor = connection.execute(
            """
            INSERT INTO products (
                name,
                description,
                price,
                image_url,
                category_id,
                stock,
                featured,
                has_color_options,
                allow_multiple_colors,
                active,
                created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                product.name.strip(),
                product.description.strip(),
                round(float(product.price), 2),
                product.image_url.strip(),
                product.category_id,
                int(product.stock),
                1 if product.featured else 0,
                1 if product.has_color_options else 0,
                1 if product.allow_multiple_colors else 0,
                1 if product.active else 0,
                format_timestamp(product.created_at or datetime.now()),
            ),
        )
        connection.commit()
        product_id = int(cursor.lastrowid)

    created = get_product(product_id)
    if created is None:
        raise InternalError("Stored product could not be read back")
    return created


def update_product(product: Product) -> Optional[Product]:
    with create_connection() as connection:
        cursor = connection.execute(
            """
            UPDATE products
            SET
                name = ?,
                description = ?,
                price = ?,
                image_url = ?,
                category_id = ?,
                stock = ?,
                featured = ?,
                has_color_options = ?,
                allow_multiple_colors = ?,
                active = ?
            WHERE id = ?
            """,
            (
                product.name.strip(),
                product.description.strip(),
                round(float(product.price), 2),
                product.image_url.strip(),
                product.category_id,
                int(product.stock),
                1 if product.featured else 0,
                1 if product.has_color_options else 0,
                1 if product.allow_multiple_colors else 0,
                1 if product.active else 0,
                int(product.id),
            ),
        )
        connection.commit()
        if cursor.rowcount == 0:
            return None
    return get_product(product.id)


def delete_product(product_id: int) -> bool:
    with create_connection() as connection:
        cursor = connection.execute("DELETE FROM products WHERE id = ?", (int(product_id),))
        connection.commit()
        return cursor.rowcount > 0


def get_product(product_id: int) -> Optional[Product]:
    with create_connection() as connection:
        row = connection.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = ?",
            (int(product_id),),
        ).fetchone()

    if row is None:
        return None
    return _row_to_product(row)


def list_products(*, category_id: Optional[int] = None, active_only: bool = False) -> List[Product]:
    clauses: List[str] = []
    params: List[object] = []
    if category_id is not None:
        clauses.append("category_id = ?")
        params.append(int(category_id))
    if active_only:
        clauses.append("active = 1")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with create_connection() as connection:
        rows = connection.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products {where} ORDER BY id ASC",
            params,
        ).fetchall()
    return [_row_to_product(row) for row in rows]


def _row_to_product(row: sqlite3.Row) -> Product:
    return Product(
        id=int(row["id"]),
        name=row["name"],
        description=row["description"] or "",
        price=float(row["price"] or 0.0),
        image_url=row["image_url"] or "",
        category_id=row["category_id"],
        stock=int(row["stock"] or 0),
        featured=bool(row["featured"]),
        has_color_options=bool(row["has_color_options"]),
        allow_multiple_colors=bool(row["allow_multiple_colors"]),
        active=bool(row["active"]),
        created_at=parse_timestamp(row["created_at"]),
    )


# Scents and colors

def create_scent(name: str, description: str = "", active: bool = True) -> Scent:
    with create_connection() as connection:
        cursor = connection.execute(
            "INSERT INTO scents (name, description, active) VALUES (?, ?, ?)",
            (name.strip(), description.strip(), 1 if active else 0),
        )
        connection.commit()
        return Scent(id=int(cursor.lastrowid), name=name.strip(), description=description.strip(), active=active)


def get_scent(scent_id: int) -> Optional[Scent]:
    with create_connection() as connection:
        row = connection.execute(
            "SELECT id, name, description, active FROM scents WHERE id = ?",
            (int(scent_id),),
        ).fetchone()
    if row is None:
        return None
    return Scent(id=int(row["id"]), name=row["name"], description=row["description"] or "", active=bool(row["active"]))


def list_scents() -> List[Scent]:
    with create_connection() as connection:
        rows = connection.execute("SELECT id, name, description, active FROM scents ORDER BY name ASC").fetchall()
    return [
        Scent(id=int(row["id"]), name=row["name"], description=row["description"] or "", active=bool(row["active"]))
        for row in rows
    ]


def create_color(name: str, hex_value: str = "", active: bool = True) -> Color:
    with create_connection() as connection:
        cursor = connection.execute(
            "INSERT INTO colors (name, hex_value, active) VALUES (?, ?, ?)",
            (name.strip(), hex_value.strip(), 1 if active else 0),
        )
        connection.commit()
        return Color(id=int(cursor.lastrowid), name=name.strip(), hex_value=hex_value.strip(), active=active)


def get_color(color_id: int) -> Optional[Color]:
    colors = get_colors([color_id])
    return colors[0] if colors else None


def get_colors(color_ids: Iterable[int]) -> List[Color]:
    """Return the colors for the given ids, preserving the requested order."""
    ids = [int(value) for value in color_ids]
    if not ids:
        return []
    placeholders = ", ".join("?" for _ in ids)
    with create_connection() as connection:
        rows = connection.execute(
            f"SELECT id, name, hex_value, active FROM colors WHERE id IN ({placeholders})",
            ids,
        ).fetchall()

    by_id = {
        int(row["id"]): Color(
            id=int(row["id"]),
            name=row["name"],
            hex_value=row["hex_value"] or "",
            active=bool(row["active"]),
        )
        for row in rows
    }
    return [by_id[color_id] for color_id in ids if color_id in by_id]


def list_colors() -> List[Color]:
    with create_connection() as connection:
        rows = connection.execute("SELECT id, name, hex_value, active FROM colors ORDER BY name ASC").fetchall()
    return [
        Color(id=int(row["id"]), name=row["name"], hex_value=row["hex_value"] or "", active=bool(row["active"]))
        for row in rows
    ]


# Product variants

def add_product_scent(product_id: int, scent_id: int) -> None:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        connection.execute(
            "INSERT OR IGNORE INTO product_scents (product_id, scent_id) VALUES (?, ?)",
            (int(product_id), int(scent_id)),
        )
        connection.commit()


def remove_product_scent(product_id: int, scent_id: int) -> None:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        connection.execute(
            "DELETE FROM product_scents WHERE product_id = ? AND scent_id = ?",
            (int(product_id), int(scent_id)),
        )
        connection.commit()


def list_product_scents(product_id: int) -> List[Scent]:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        rows = connection.execute(
            """
            SELECT s.id, s.name, s.description, s.active
            FROM scents s
            JOIN product_scents ps ON ps.scent_id = s.id
            WHERE ps.product_id = ?
            ORDER BY s.name ASC
            """,
            (int(product_id),),
        ).fetchall()
    return [
        Scent(id=int(row["id"]), name=row["name"], description=row["description"] or "", active=bool(row["active"]))
        for row in rows
    ]


def add_product_color(product_id: int, color_id: int) -> None:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        connection.execute(
            "INSERT OR IGNORE INTO product_colors (product_id, color_id) VALUES (?, ?)",
            (int(product_id), int(color_id)),
        )
        connection.commit()


def remove_product_color(product_id: int, color_id: int) -> None:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        connection.execute(
            "DELETE FROM product_colors WHERE product_id = ? AND color_id = ?",
            (int(product_id), int(color_id)),
        )
        connection.commit()


def list_product_colors(product_id: int) -> List[Color]:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        rows = connection.execute(
            """
            SELECT c.id, c.name, c.hex_value, c.active
            FROM colors c
            JOIN product_colors pc ON pc.color_id = c.id
            WHERE pc.product_id = ?
            ORDER BY c.name ASC
            """,
            (int(product_id),),
        ).fetchall()
    return [
        Color(id=int(row["id"]), name=row["name"], hex_value=row["hex_value"] or "", active=bool(row["active"]))
        for row in rows
    ]


# Categories and collections

def create_category(name: str, description: str = "") -> Category:
    with create_connection() as connection:
        cursor = connection.execute(
            "INSERT INTO categories (name, description) VALUES (?, ?)",
            (name.strip(), description.strip()),
        )
        connection.commit()
        return Category(id=int(cursor.lastrowid), name=name.strip(), description=description.strip())


def list_categories() -> List[Category]:
    with create_connection() as connection:
        rows = connection.execute("SELECT id, name, description FROM categories ORDER BY name ASC").fetchall()
    return [Category(id=int(row["id"]), name=row["name"], description=row["description"] or "") for row in rows]


def create_collection(name: str, description: str = "", active: bool = True) -> Collection:
    with create_connection() as connection:
        cursor = connection.execute(
            "INSERT INTO collections (name, description, active) VALUES (?, ?, ?)",
            (name.strip(), description.strip(), 1 if active else 0),
        )
        connection.commit()
        return Collection(id=int(cursor.lastrowid), name=name.strip(), description=description.strip(), active=active)


def list_collections() -> List[Collection]:
    with create_connection() as connection:
        rows = connection.execute(
            "SELECT id, name, description, active FROM collections ORDER BY name ASC"
        ).fetchall()
    return [
        Collection(id=int(row["id"]), name=row["name"], description=row["description"] or "", active=bool(row["active"]))
        for row in rows
    ]


def add_product_to_collection(product_id: int, collection_id: int) -> None:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        connection.execute(
            "INSERT OR IGNORE INTO product_collections (product_id, collection_id) VALUES (?, ?)",
            (int(product_id), int(collection_id)),
        )
        connection.commit()


def list_collection_products(collection_id: int) -> List[Product]:
    with create_connection() as connection:
        _ensure_junction_tables(connection)
        rows = connection.execute(
            f"""
            SELECT {_PRODUCT_COLUMNS}
            FROM products
            WHERE id IN (
                SELECT product_id FROM product_collections WHERE collection_id = ?
            )
            ORDER BY id ASC
            """,
            (int(collection_id),),
        ).fetchall()
    return [_row_to_product(row) for row in rows]
