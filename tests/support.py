import os
import tempfile
import unittest

from timberline.db import database as db_database

BILLING = {
    "email": "jane@example.com",
    "first_name": "Jane",
    "last_name": "Doe",
    "address_line1": "1 Mill Lane",
    "town": "Hereford",
    "postcode": "HR1 2AB",
}


def checkout_data(**overrides):
    data = {"billing_address": dict(BILLING), "use_billing_as_shipping": True}
    data.update(overrides)
    return data


class TempStoreTestCase(unittest.IsolatedAsyncioTestCase):
    """Points the document store at a fresh temporary sqlite file per test."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database._initialized = False

    async def asyncSetUp(self):
        # opening a connection runs the table and seed scripts
        async with db_database.connect() as conn:
            cur = await conn.execute("SELECT name FROM sqlite_master WHERE type='table';")
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        self.temp_dir.cleanup()
