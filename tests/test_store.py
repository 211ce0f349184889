import unittest

from support import TempStoreTestCase

from timberline.db import store
from timberline.utils.errors import NotFoundError


class DocumentStoreTestCase(TempStoreTestCase):
    async def test_seed_documents_present(self):
        delivery = await store.get_document("siteSettings", "deliverySettings")
        self.assertEqual(delivery["free_delivery_threshold"], 1000)
        self.assertEqual(await store.count_documents("specialDeals"), 4)
        self.assertEqual(await store.count_documents("specialDeals", {"is_active": True}), 3)

    async def test_add_get_and_metadata(self):
        doc_id = await store.add_document("things", {"name": "beam", "size": 3})
        doc = await store.get_document("things", doc_id)
        self.assertEqual(doc["id"], doc_id)
        self.assertEqual(doc["name"], "beam")
        self.assertIsNotNone(doc["created_at"])
        self.assertIsNone(await store.get_document("things", "missing"))

    async def test_query_filters(self):
        await store.add_document("things", {"kind": "a", "n": 1, "tag": None})
        await store.add_document("things", {"kind": "b", "n": 2, "tag": "x"})
        await store.add_document("things", {"kind": "c", "n": 3, "tag": "y"})

        found = await store.query_documents("things", where={"kind": ["a", "c"]}, order_by="n")
        self.assertEqual([d["n"] for d in found], [1, 3])

        found = await store.query_documents("things", where={"tag": None})
        self.assertEqual([d["kind"] for d in found], ["a"])

        found = await store.query_documents("things", order_by="n", descending=True, limit=2)
        self.assertEqual([d["n"] for d in found], [3, 2])

        found = await store.query_documents("things", where={"kind": []})
        self.assertEqual(found, [])

        with self.assertRaises(ValueError):
            await store.query_documents("things", where={"bad field; --": 1})

    async def test_set_merge_and_update(self):
        await store.set_document("things", "t1", {"a": 1, "b": 2})
        await store.set_document("things", "t1", {"b": 3}, merge=True)
        self.assertEqual((await store.get_document("things", "t1"))["a"], 1)
        await store.set_document("things", "t1", {"c": 4})
        doc = await store.get_document("things", "t1")
        self.assertNotIn("a", doc)

        await store.update_document("things", "t1", {"c": 5})
        self.assertEqual((await store.get_document("things", "t1"))["c"], 5)
        with self.assertRaises(NotFoundError):
            await store.update_document("things", "nope", {"c": 1})

    async def test_delete_is_idempotent(self):
        doc_id = await store.add_document("things", {"a": 1})
        self.assertTrue(await store.delete_document("things", doc_id))
        self.assertFalse(await store.delete_document("things", doc_id))

    async def test_batch_commits_everything(self):
        keep = await store.add_document("things", {"a": 1})
        drop = await store.add_document("things", {"a": 2})
        async with store.batch() as b:
            new_id = b.add("things", {"a": 3})
            b.update("things", keep, {"a": 10})
            b.delete("things", drop)
        self.assertEqual((await store.get_document("things", keep))["a"], 10)
        self.assertIsNone(await store.get_document("things", drop))
        self.assertIsNotNone(await store.get_document("things", new_id))

    async def test_batch_rolls_back_on_failure(self):
        keep = await store.add_document("things", {"a": 1})
        b = store.WriteBatch()
        b.update("things", keep, {"a": 99})
        b.add("things", {"a": 5})
        b.update("things", "missing", {"a": 0})
        with self.assertRaises(NotFoundError):
            await b.commit()
        self.assertEqual((await store.get_document("things", keep))["a"], 1)
        self.assertEqual(await store.count_documents("things"), 1)

    async def test_batch_block_error_writes_nothing(self):
        with self.assertRaises(RuntimeError):
            async with store.batch() as b:
                b.add("things", {"a": 1})
                raise RuntimeError("boom")
        self.assertEqual(await store.count_documents("things"), 0)


if __name__ == "__main__":
    unittest.main()
