import os
import tempfile
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from agency.documents import (
    DocumentNotFoundError,
    DocumentStoreError,
    InMemoryDocumentStore,
    Query,
    SqlDocumentStore,
    upsert_document_id,
)


class DocumentStoreContract:
    """Behaviour every document store must share."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()
        for index, (name, active) in enumerate(
            [("Branding", True), ("Apps", False), ("Web Design", True)]
        ):
            self.store.create_document(
                "services",
                f"s{index}",
                {"name": name, "isActive": active, "order": 2 - index},
            )

    def test_create_and_get(self):
        document = self.store.get_document("services", "s0")
        self.assertEqual(document["name"], "Branding")
        self.assertEqual(document["$id"], "s0")
        self.assertEqual(document["$collectionId"], "services")
        self.assertIn("$createdAt", document)

    def test_get_missing_raises(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.get_document("services", "missing")

    def test_create_duplicate_id_raises(self):
        with self.assertRaises(DocumentStoreError):
            self.store.create_document("services", "s0", {"name": "Again"})

    def test_update_merges_fields(self):
        updated = self.store.update_document("services", "s1", {"isActive": True})
        self.assertEqual(updated["name"], "Apps")
        self.assertTrue(updated["isActive"])
        with self.assertRaises(DocumentNotFoundError):
            self.store.update_document("services", "missing", {"name": "x"})

    def test_delete(self):
        self.store.delete_document("services", "s1")
        with self.assertRaises(DocumentNotFoundError):
            self.store.get_document("services", "s1")
        with self.assertRaises(DocumentNotFoundError):
            self.store.delete_document("services", "s1")

    def test_equality_order_and_limit(self):
        result = self.store.list_documents(
            "services",
            [Query.equal("isActive", True), Query.order_asc("name"), Query.limit(1)],
        )
        self.assertEqual(result.total, 2)
        self.assertEqual([doc["name"] for doc in result.documents], ["Branding"])

        result = self.store.list_documents("services", [Query.order_asc("order")])
        self.assertEqual(
            [doc["$id"] for doc in result.documents], ["s2", "s1", "s0"]
        )

    def test_equal_string_and_any_of(self):
        result = self.store.list_documents("services", [Query.equal("name", "Apps")])
        self.assertEqual([doc["$id"] for doc in result.documents], ["s1"])
        result = self.store.list_documents(
            "services", [Query.equal("name", ["Apps", "Web Design"])]
        )
        self.assertEqual(result.total, 2)

    def test_collections_are_separate(self):
        self.assertEqual(self.store.list_documents("projects").total, 0)

    def test_upsert_updates_in_place(self):
        match = {"entityId": "e1", "metaKey": "seo_title"}
        first = self.store.upsert_document("servicesMeta", match, {"metaValue": "A"})
        second = self.store.upsert_document("servicesMeta", match, {"metaValue": "B"})
        self.assertEqual(first["$id"], second["$id"])
        rows = self.store.list_documents(
            "servicesMeta", [Query.equal("entityId", "e1")]
        ).documents
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["metaValue"], "B")

    def test_upsert_after_match_fields_change_creates_new_document(self):
        match = {"entityId": "e1", "metaKey": "seo_title"}
        first = self.store.upsert_document("servicesMeta", match, {"metaValue": "A"})
        self.store.update_document("servicesMeta", first["$id"], {"entityId": "e2"})
        second = self.store.upsert_document("servicesMeta", match, {"metaValue": "B"})
        self.assertNotEqual(first["$id"], second["$id"])
        self.assertEqual(self.store.list_documents("servicesMeta").total, 2)


class InMemoryDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    def make_store(self):
        return InMemoryDocumentStore()

    def test_reset(self):
        self.store.reset()
        self.assertEqual(self.store.list_documents("services").total, 0)

    def test_returned_documents_are_copies(self):
        document = self.store.get_document("services", "s0")
        document["name"] = "Changed"
        self.assertEqual(self.store.get_document("services", "s0")["name"], "Branding")


class SqlDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    def make_store(self):
        return SqlDocumentStore("sqlite+pysqlite:///:memory:")


class FileSqlDocumentStoreTests(unittest.TestCase):
    """Concurrent writers against one on-disk SQLite database."""

    WRITERS = 8

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        path = os.path.join(self.tmpdir.name, "documents.db")
        self.store = SqlDocumentStore(f"sqlite+pysqlite:///{path}")

    def tearDown(self):
        self.store.engine.dispose()
        self.tmpdir.cleanup()

    def test_concurrent_upserts_keep_one_row_per_key(self):
        match = {"entityId": "e1", "metaKey": "seo_title"}
        barrier = threading.Barrier(self.WRITERS)

        def write(index):
            barrier.wait()
            return self.store.upsert_document(
                "servicesMeta", match, {"metaValue": f"v{index}"}
            )

        with ThreadPoolExecutor(max_workers=self.WRITERS) as executor:
            results = list(executor.map(write, range(self.WRITERS)))

        rows = self.store.list_documents("servicesMeta").documents
        self.assertEqual(len(rows), 1)
        self.assertEqual({result["$id"] for result in results}, {rows[0]["$id"]})
        self.assertEqual(rows[0]["$id"], upsert_document_id("servicesMeta", match))
        self.assertIn(rows[0]["metaValue"], {f"v{i}" for i in range(self.WRITERS)})

    def test_concurrent_upserts_on_distinct_keys(self):
        barrier = threading.Barrier(self.WRITERS)

        def write(index):
            barrier.wait()
            for _ in range(3):
                self.store.upsert_document(
                    "servicesMeta",
                    {"entityId": f"e{index % 2}", "metaKey": "seo_title"},
                    {"metaValue": f"v{index}"},
                )

        with ThreadPoolExecutor(max_workers=self.WRITERS) as executor:
            list(executor.map(write, range(self.WRITERS)))

        rows = self.store.list_documents("servicesMeta").documents
        self.assertEqual(sorted(row["entityId"] for row in rows), ["e0", "e1"])


if __name__ == "__main__":
    unittest.main()
