# src/db/crud.py
from __future__ import annotations

import random
import secrets
import time
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

import aiosqlite

from db import models
from db.database import connect
from utils.pure import normalize_email

_PROFILE_COLUMNS = (
    "id, name, specialty, avatar_url, location, experience, "
    "availability, workplace, phone, instagram"
)
_PRODUCT_COLUMNS = (
    "id, name, category, price, stock, image_url, description, "
    "short_description, artisan_name"
)
_ORDER_COLUMNS = (
    "id, owner_id, order_date, total, ship_name, ship_email, ship_phone, "
    "ship_address, payment_method, status, expected_delivery, current_location"
)

# tables that own a text id, for generate_id
_ID_TABLES = {"artisans", "portfolio_items", "products", "orders"}


async def _id_exists(conn: aiosqlite.Connection, table: str, id_: str) -> bool:
    cur = await conn.execute(f"SELECT 1 FROM {table} WHERE id = ?;", (id_,))
    row = await cur.fetchone()
    await cur.close()
    return row is not None


async def generate_id(conn: aiosqlite.Connection, table: str, prefix: str) -> str:
    """
    Time-derived id (prefix + epoch millis) that isn't already used in `table`.
    On collision a random suffix is appended until the id is free.
    """
    if table not in _ID_TABLES:
        raise ValueError(f"Unknown id table: {table}")
    cand = f"{prefix}{int(time.time() * 1000)}"
    base = cand
    while await _id_exists(conn, table, cand):
        cand = f"{base}-{random.randint(1000, 9999)}"
    return cand


def _row_to_product(row) -> models.Product:
    return models.Product(
        id=row[0],
        name=row[1],
        category=row[2],
        price=float(row[3]),
        stock=int(row[4]),
        image_url=row[5],
        description=row[6],
        short_description=row[7],
        artisan_name=row[8],
    )


async def _load_portfolio(
    conn: aiosqlite.Connection, artisan_id: str
) -> tuple[models.PortfolioItem, ...]:
    cur = await conn.execute(
        """
        SELECT id, title, image_url, description
        FROM portfolio_items
        WHERE artisan_id = ?
        ORDER BY position;
        """,
        (artisan_id,),
    )
    rows = await cur.fetchall()
    await cur.close()
    return tuple(
        models.PortfolioItem(
            id=r[0], title=r[1], image_url=r[2], description=r[3]
        )
        for r in rows
    )


async def _row_to_profile(conn: aiosqlite.Connection, row) -> models.ArtisanProfile:
    return models.ArtisanProfile(
        id=row[0],
        name=row[1],
        specialty=row[2],
        avatar_url=row[3],
        location=row[4],
        experience=row[5],
        availability=row[6],
        workplace=row[7],
        phone=row[8],
        instagram=row[9],
        portfolio=await _load_portfolio(conn, row[0]),
    )


async def _write_portfolio(
    conn: aiosqlite.Connection,
    artisan_id: str,
    items: Iterable[models.PortfolioItem],
) -> None:
    """Replace the artisan's portfolio with `items`, in order."""
    await conn.execute("DELETE FROM portfolio_items WHERE artisan_id = ?;", (artisan_id,))
    for pos, item in enumerate(items):
        item_id = item.id or await generate_id(conn, "portfolio_items", "pf")
        await conn.execute(
            """
            INSERT INTO portfolio_items(id, artisan_id, position, title, image_url, description)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (item_id, artisan_id, pos, item.title, item.image_url, item.description),
        )


# ---------------------------
# Credentials & Profiles
# ---------------------------


async def email_available(email: str) -> bool:
    """True if no credential is registered under the given email."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM credentials WHERE email = ? LIMIT 1;",
            (normalize_email(email),),
        )
        row = await cur.fetchone()
        await cur.close()
        return row is None


async def get_credential(email: str) -> Optional[models.Credential]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT email, pwd_hash, artisan_id FROM credentials WHERE email = ?;",
            (normalize_email(email),),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.Credential(email=row[0], pwd_hash=row[1], profile_id=row[2])


async def register_artisan(
    email: str, pwd_hash: str, profile: models.ArtisanProfile
) -> models.ArtisanProfile:
    """
    Create the credential and its owned profile in one transaction.
    Returns the profile with its assigned id. Raises sqlite3.IntegrityError if
    the email is already registered.
    """
    async with connect() as conn:
        profile_id = profile.id or await generate_id(conn, "artisans", "user")
        await conn.execute(
            f"INSERT INTO artisans({_PROFILE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                profile_id,
                profile.name,
                profile.specialty,
                profile.avatar_url,
                profile.location,
                profile.experience,
                profile.availability,
                profile.workplace,
                profile.phone,
                profile.instagram,
            ),
        )
        await _write_portfolio(conn, profile_id, profile.portfolio)
        await conn.execute(
            "INSERT INTO credentials(email, pwd_hash, artisan_id) VALUES (?, ?, ?);",
            (normalize_email(email), pwd_hash, profile_id),
        )
        await conn.commit()
        cur = await conn.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM artisans WHERE id = ?;", (profile_id,)
        )
        row = await cur.fetchone()
        await cur.close()
        return await _row_to_profile(conn, row)


async def get_profile(profile_id: str) -> Optional[models.ArtisanProfile]:
    """Return the artisan profile (with portfolio) or None."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM artisans WHERE id = ?;", (profile_id,)
        )
        row = await cur.fetchone()
        await cur.close()
        if not row:
            return None
        return await _row_to_profile(conn, row)


async def list_artisans() -> List[models.ArtisanProfile]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM artisans ORDER BY rowid;"
        )
        rows = await cur.fetchall()
        await cur.close()
        return [await _row_to_profile(conn, row) for row in rows]


async def update_profile(profile: models.ArtisanProfile) -> bool:
    """
    Replace the stored profile (portfolio included) wholesale.
    Return True if a row was updated.
    """
    async with connect() as conn:
        res = await conn.execute(
            """
            UPDATE artisans
            SET name = ?, specialty = ?, avatar_url = ?, location = ?, experience = ?,
                availability = ?, workplace = ?, phone = ?, instagram = ?
            WHERE id = ?;
            """,
            (
                profile.name,
                profile.specialty,
                profile.avatar_url,
                profile.location,
                profile.experience,
                profile.availability,
                profile.workplace,
                profile.phone,
                profile.instagram,
                profile.id,
            ),
        )
        if res.rowcount == 0:
            return False
        await _write_portfolio(conn, profile.id, profile.portfolio)
        await conn.commit()
        return True


async def new_portfolio_item_id() -> str:
    async with connect() as conn:
        return await generate_id(conn, "portfolio_items", "pf")


# ---------------------------
# One-time codes
# ---------------------------


async def put_otp(email: str, code: str, issued_at: datetime) -> None:
    """Store `code` as the only pending code for `email`, replacing any older one."""
    async with connect() as conn:
        await conn.execute(
            "INSERT OR REPLACE INTO otps(email, code, issued_at) VALUES (?, ?, ?);",
            (normalize_email(email), code, issued_at.isoformat()),
        )
        await conn.commit()


async def get_otp(email: str) -> Optional[models.OtpRecord]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT email, code, issued_at FROM otps WHERE email = ?;",
            (normalize_email(email),),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.OtpRecord(
        email=row[0], code=row[1], issued_at=datetime.fromisoformat(row[2])
    )


async def consume_otp(email: str, code: str) -> bool:
    """Delete the pending code iff it equals `code`. True if one was consumed."""
    async with connect() as conn:
        res = await conn.execute(
            "DELETE FROM otps WHERE email = ? AND code = ?;",
            (normalize_email(email), code),
        )
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Sessions
# ---------------------------


async def start_session(profile_id: str, start_time: datetime) -> str:
    """
    Start a session for an artisan; returns a fresh opaque token bound to it.
    """
    async with connect() as conn:
        while True:
            token = secrets.token_urlsafe(32)
            cur = await conn.execute(
                "SELECT 1 FROM sessions WHERE token = ?;", (token,)
            )
            exists = await cur.fetchone()
            await cur.close()
            if not exists:
                break
        await conn.execute(
            "INSERT INTO sessions(token, artisan_id, start_time, end_time) VALUES (?, ?, ?, NULL);",
            (token, profile_id, start_time.isoformat()),
        )
        await conn.commit()
    return token


async def resolve_session(token: str) -> Optional[str]:
    """Return the profile id of a live session token, or None."""
    if not isinstance(token, str) or not token:
        return None
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT artisan_id FROM sessions WHERE token = ? AND end_time IS NULL;",
            (token,),
        )
        row = await cur.fetchone()
        await cur.close()
    return row[0] if row else None


async def end_session(token: str, end_time: datetime) -> bool:
    """Set sessions.end_time for a live token. True if one was ended."""
    async with connect() as conn:
        res = await conn.execute(
            "UPDATE sessions SET end_time = ? WHERE token = ? AND end_time IS NULL;",
            (end_time.isoformat(), token),
        )
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Durable client storage
# ---------------------------


async def get_local(key: str) -> Optional[str]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT value FROM local_storage WHERE key = ?;", (key,)
        )
        row = await cur.fetchone()
        await cur.close()
    return row[0] if row else None


async def set_local(key: str, value: str) -> None:
    async with connect() as conn:
        await conn.execute(
            "INSERT OR REPLACE INTO local_storage(key, value) VALUES (?, ?);",
            (key, value),
        )
        await conn.commit()


async def remove_local(key: str) -> None:
    async with connect() as conn:
        await conn.execute("DELETE FROM local_storage WHERE key = ?;", (key,))
        await conn.commit()


# ---------------------------
# Products
# ---------------------------


async def list_products() -> List[models.Product]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY rowid;"
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(row) for row in rows]


async def get_product(product_id: str) -> Optional[models.Product]:
    """Fetch a product by id."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = ?;", (product_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_product(row) if row else None


async def get_products(product_ids: Iterable[str]) -> Dict[str, models.Product]:
    """Fetch several products at once; ids with no product are simply absent."""
    ids = list(dict.fromkeys(product_ids))
    if not ids:
        return {}
    placeholders = ", ".join("?" * len(ids))
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id IN ({placeholders});",
            tuple(ids),
        )
        rows = await cur.fetchall()
        await cur.close()
    return {row[0]: _row_to_product(row) for row in rows}


async def products_by_artisan(artisan_name: str) -> List[models.Product]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE artisan_name = ? ORDER BY rowid;",
            (artisan_name,),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(row) for row in rows]


async def search_products(query: str) -> List[models.Product]:
    """
    Case-insensitive keyword search over name/category/description.
    Rules:
    - Empty string: all products.
    - Multiple words: exact phrase matches first, then matches of each word;
      no product appears twice.
    - Single word: plain keyword search.
    """
    phrase = (query or "").strip().lower()
    if not phrase:
        return await list_products()

    terms = [phrase]
    for w in phrase.split():
        if w not in terms:
            terms.append(w)

    results: List[models.Product] = []
    seen: set[str] = set()
    async with connect() as conn:
        for term in terms:
            like = f"%{term}%"
            cur = await conn.execute(
                f"""
                SELECT {_PRODUCT_COLUMNS}
                FROM products
                WHERE LOWER(name) LIKE ?
                   OR LOWER(category) LIKE ?
                   OR LOWER(description) LIKE ?
                   OR LOWER(short_description) LIKE ?
                ORDER BY rowid;
                """,
                (like, like, like, like),
            )
            rows = await cur.fetchall()
            await cur.close()
            for row in rows:
                if row[0] in seen:
                    continue
                seen.add(row[0])
                results.append(_row_to_product(row))
    return results


async def create_product(product: models.Product) -> models.Product:
    """Insert a product, assigning an id when it has none. Returns the stored product."""
    async with connect() as conn:
        product_id = product.id or await generate_id(conn, "products", "prod")
        await conn.execute(
            f"INSERT INTO products({_PRODUCT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                product_id,
                product.name,
                product.category,
                product.price,
                product.stock,
                product.image_url,
                product.description,
                product.short_description,
                product.artisan_name,
            ),
        )
        await conn.commit()
    return models.Product(
        id=product_id,
        name=product.name,
        category=product.category,
        price=product.price,
        stock=product.stock,
        image_url=product.image_url,
        description=product.description,
        short_description=product.short_description,
        artisan_name=product.artisan_name,
    )


async def update_product(product: models.Product) -> bool:
    """Replace every field of an existing product. Return True if a row was updated."""
    async with connect() as conn:
        res = await conn.execute(
            """
            UPDATE products
            SET name = ?, category = ?, price = ?, stock = ?, image_url = ?,
                description = ?, short_description = ?, artisan_name = ?
            WHERE id = ?;
            """,
            (
                product.name,
                product.category,
                product.price,
                product.stock,
                product.image_url,
                product.description,
                product.short_description,
                product.artisan_name,
                product.id,
            ),
        )
        await conn.commit()
        return res.rowcount > 0


async def delete_product(product_id: str) -> bool:
    async with connect() as conn:
        res = await conn.execute("DELETE FROM products WHERE id = ?;", (product_id,))
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Orders
# ---------------------------


async def new_order_id() -> str:
    async with connect() as conn:
        return await generate_id(conn, "orders", "ORD-")


async def insert_order(order: models.Order) -> None:
    """Append an order and its line snapshot in one transaction."""
    details = order.delivery_details
    async with connect() as conn:
        await conn.execute(
            f"INSERT INTO orders({_ORDER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                order.id,
                order.owner_id,
                order.order_date.isoformat(),
                order.total,
                details.name,
                details.email,
                details.phone,
                details.address,
                details.payment_method,
                order.status,
                order.expected_delivery.isoformat(),
                order.current_location,
            ),
        )
        for line_no, item in enumerate(order.items, start=1):
            await conn.execute(
                "INSERT INTO order_items(order_id, line_no, product_id, quantity) VALUES (?, ?, ?, ?);",
                (order.id, line_no, item.product_id, item.quantity),
            )
        await conn.commit()


async def _row_to_order(conn: aiosqlite.Connection, row) -> models.Order:
    cur = await conn.execute(
        "SELECT product_id, quantity FROM order_items WHERE order_id = ? ORDER BY line_no;",
        (row[0],),
    )
    lines = await cur.fetchall()
    await cur.close()
    return models.Order(
        id=row[0],
        owner_id=row[1],
        order_date=datetime.fromisoformat(row[2]),
        total=float(row[3]),
        delivery_details=models.DeliveryDetails(
            name=row[4],
            email=row[5],
            phone=row[6],
            address=row[7],
            payment_method=row[8],
        ),
        status=row[9],
        expected_delivery=date.fromisoformat(row[10]),
        current_location=row[11],
        items=tuple(
            models.CartItem(product_id=ln[0], quantity=int(ln[1])) for ln in lines
        ),
    )


async def list_orders(owner_id: str) -> List[models.Order]:
    """List an artisan's orders in reverse chronological order."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_ORDER_COLUMNS} FROM orders WHERE owner_id = ? ORDER BY order_date DESC, rowid DESC;",
            (owner_id,),
        )
        rows = await cur.fetchall()
        await cur.close()
        return [await _row_to_order(conn, row) for row in rows]


async def count_orders(owner_id: str) -> int:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT COUNT(*) FROM orders WHERE owner_id = ?;", (owner_id,)
        )
        total = (await cur.fetchone())[0]
        await cur.close()
    return int(total)


async def get_order(order_id: str) -> Optional[models.Order]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ?;", (order_id,)
        )
        row = await cur.fetchone()
        await cur.close()
        if not row:
            return None
        return await _row_to_order(conn, row)


async def update_order_status(
    order_id: str, status: models.OrderStatus, current_location: str
) -> bool:
    async with connect() as conn:
        res = await conn.execute(
            "UPDATE orders SET status = ?, current_location = ? WHERE id = ?;",
            (status, current_location, order_id),
        )
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Dashboard
# ---------------------------


async def get_dashboard() -> models.DashboardData:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT series, label, value FROM metric_periods ORDER BY series, idx;"
        )
        rows = await cur.fetchall()
        await cur.close()
        cur = await conn.execute(
            "SELECT label, views, likes, follows FROM engagement ORDER BY idx;"
        )
        eng_rows = await cur.fetchall()
        await cur.close()
    series: Dict[str, List[models.PeriodValue]] = {"sales": [], "profit": []}
    for name, label, value in rows:
        series[name].append(models.PeriodValue(label=label, value=float(value)))
    return models.DashboardData(
        sales=tuple(series["sales"]),
        profit=tuple(series["profit"]),
        engagement=tuple(
            models.EngagementPoint(
                label=r[0], views=int(r[1]), likes=int(r[2]), follows=int(r[3])
            )
            for r in eng_rows
        ),
    )


async def _add_to_latest_period(
    conn: aiosqlite.Connection, series: str, amount: float
) -> bool:
    res = await conn.execute(
        """
        UPDATE metric_periods
        SET value = value + ?
        WHERE series = ?
          AND idx = (SELECT MAX(idx) FROM metric_periods WHERE series = ?);
        """,
        (amount, series, series),
    )
    return res.rowcount > 0


async def book_sale(sales: float, profit: float) -> bool:
    """
    Add `sales` and `profit` to the most recent bucket of their series, in one
    transaction. Return False if neither series has buckets.
    """
    async with connect() as conn:
        booked_sales = await _add_to_latest_period(conn, "sales", sales)
        booked_profit = await _add_to_latest_period(conn, "profit", profit)
        await conn.commit()
        return booked_sales or booked_profit
