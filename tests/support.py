import os
import sys
import tempfile
import unittest

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import database as db_database  # noqa: E402
from utils.config import settings  # noqa: E402


class DbTestCase(unittest.IsolatedAsyncioTestCase):
    """Points the store at a fresh temporary sqlite file with seed data."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        self._saved = (settings.db_path, settings.simulated_latency)
        settings.db_path = self.db_path
        settings.simulated_latency = 0
        db_database.reset()

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table';"
            )
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        settings.db_path, settings.simulated_latency = self._saved
        db_database.reset()
        self.temp_dir.cleanup()
