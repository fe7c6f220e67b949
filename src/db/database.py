# manages connection to db, provides helper methods internal to db package
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite
from werkzeug.security import generate_password_hash

from utils.config import settings
from utils.logger import get_logger

_logger = get_logger(__name__)

_HERE = os.path.dirname(os.path.abspath(__file__))
DB_INIT_SCRIPTS = [
    os.path.join(_HERE, "schema.sql"),
    os.path.join(_HERE, "seed-data.sql"),
]

# (email, password, artisan id) of the demo account
DEMO_CREDENTIALS = [("elena@example.com", "password123", "user1")]

# bumped whenever schema.sql changes incompatibly
SCHEMA_VERSION = 1

_initialized = False
_init_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    for script in DB_INIT_SCRIPTS:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info(f"Initializing database with script {os.path.basename(script)}...")
        with open(script, "r", encoding="utf-8") as f:
            await conn.executescript(f.read())
    for email, pwd, artisan_id in DEMO_CREDENTIALS:
        await conn.execute(
            "INSERT OR IGNORE INTO credentials(email, pwd_hash, artisan_id) VALUES (?, ?, ?);",
            (email, generate_password_hash(pwd), artisan_id),
        )
    await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    await conn.commit()


async def _schema_version(conn: aiosqlite.Connection) -> int:
    async with conn.execute("PRAGMA user_version;") as cur:
        row = await cur.fetchone()
    return row[0] if row else 0


def reset() -> None:
    """Forget that the database was initialized, e.g. after pointing db_path elsewhere."""
    global _initialized, _init_lock
    _initialized = False
    _init_lock = asyncio.Lock()


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    Waits the configured simulated latency first, and ensures the database is
    initialized (tables and seed data) on first use.
    """
    global _initialized
    if settings.simulated_latency > 0:
        await asyncio.sleep(settings.simulated_latency)

    db_dir = os.path.dirname(settings.db_path)
    if db_dir and not os.path.isdir(db_dir):
        os.makedirs(db_dir, exist_ok=True)

    conn = await aiosqlite.connect(settings.db_path)
    try:
        conn.row_factory = Row
        await conn.execute("PRAGMA foreign_keys = ON;")

        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    if await _schema_version(conn) < SCHEMA_VERSION:
                        _logger.info(f"Initializing database at {settings.db_path}...")
                        await _init_db(conn)
                    _initialized = True
        yield conn
    finally:
        await conn.close()
