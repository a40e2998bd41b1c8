# manages connection to db, provides helper methods internal to db package
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from utils.config import get_settings
from utils.errors import FetchError, PersistError
from utils.logger import get_logger

_logger = get_logger(__name__)

_HERE = os.path.dirname(os.path.abspath(__file__))

DB_PATH = get_settings().db_path
DB_INIT_SCRIPTS = [
    os.path.join(_HERE, "schema.sql"),
    os.path.join(_HERE, "seed-data.sql"),
]

_initialized = False
_init_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    for script in DB_INIT_SCRIPTS:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info(f"Initializing database with script {os.path.basename(script)}...")
        with open(script, "r", encoding="utf-8") as f:
            await conn.executescript(f.read())
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect(writing: bool = False) -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    Ensures the database is initialized (tables and seed data) on first use.
    Any sqlite failure inside the block surfaces as FetchError, or PersistError
    when `writing` is set.
    """
    global _initialized
    error_cls = PersistError if writing else FetchError

    try:
        folder = os.path.dirname(DB_PATH)
        if folder:
            os.makedirs(folder, exist_ok=True)
        conn = await aiosqlite.connect(DB_PATH)
    except (aiosqlite.Error, OSError) as e:
        _logger.error(f"Cannot open database {DB_PATH}: {e}")
        raise error_cls(f"Cannot open database: {e}") from e

    try:
        conn.row_factory = Row
        await conn.execute("PRAGMA foreign_keys = ON;")

        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    exists = await _table_exists(conn, "quotes")
                    if not exists:
                        _logger.info("Initializing database...")
                        await _init_db(conn)
                    _initialized = True
        yield conn
    except aiosqlite.Error as e:
        _logger.error(f"Database error: {e}")
        raise error_cls(str(e)) from e
    finally:
        await conn.close()
