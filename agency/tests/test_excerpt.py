import unittest

from agency import excerpt
from agency.documents import InMemoryDocumentStore
from agency.entities import SERVICE_GROUPS
from agency.meta import MetaStore
from shared.enums import MetaKey


class ExcerptSyncTests(unittest.TestCase):
    def setUp(self):
        self.meta_store = MetaStore(InMemoryDocumentStore())
        self.meta = SERVICE_GROUPS.meta(self.meta_store, "group-1")

    def description(self):
        return self.meta.get(MetaKey.META_DESCRIPTION)

    def test_sync_writes_excerpt_when_no_description(self):
        self.assertTrue(excerpt.sync_excerpt_to_meta(self.meta, "First excerpt."))
        self.assertEqual(self.description(), "First excerpt.")

    def test_sync_follows_excerpt_changes(self):
        excerpt.sync_excerpt_to_meta(self.meta, "E1")
        excerpt.sync_excerpt_to_meta(self.meta, "E2")
        self.assertEqual(self.description(), "E2")

    def test_manual_description_survives_excerpt_changes(self):
        excerpt.sync_excerpt_to_meta(self.meta, "E1")
        excerpt.save_with_excerpt_sync(
            self.meta, "E1", meta_description="Custom", meta_description_changed=True
        )
        self.assertFalse(excerpt.sync_excerpt_to_meta(self.meta, "E2"))
        self.assertFalse(excerpt.sync_excerpt_to_meta(self.meta, "E3"))
        self.assertEqual(self.description(), "Custom")
        self.assertTrue(excerpt.is_meta_description_overridden(self.meta, "E3"))

    def test_override_kept_even_when_retyped_to_match_excerpt(self):
        excerpt.save_with_excerpt_sync(
            self.meta, "Same", meta_description="Same", meta_description_changed=True
        )
        excerpt.sync_excerpt_to_meta(self.meta, "Different")
        self.assertEqual(self.description(), "Same")

    def test_revert_discards_override(self):
        excerpt.save_with_excerpt_sync(
            self.meta, "E1", meta_description="Custom", meta_description_changed=True
        )
        excerpt.revert_to_excerpt_sync(self.meta, "E1")
        self.assertEqual(self.description(), "E1")
        excerpt.sync_excerpt_to_meta(self.meta, "E2")
        self.assertEqual(self.description(), "E2")

    def test_empty_excerpt_is_a_noop(self):
        self.assertFalse(excerpt.sync_excerpt_to_meta(self.meta, ""))
        self.assertIsNone(self.description())

    def test_legacy_rows_use_value_comparison(self):
        self.meta.set(MetaKey.META_DESCRIPTION, "Legacy text")
        self.assertTrue(excerpt.is_meta_description_overridden(self.meta, "Other"))
        self.assertFalse(excerpt.is_meta_description_overridden(self.meta, "Legacy text"))

    def test_effective_description(self):
        self.assertEqual(excerpt.get_effective_meta_description(self.meta, ""), "")
        self.assertEqual(
            excerpt.get_effective_meta_description(self.meta, "From excerpt"),
            "From excerpt",
        )
        self.meta.set(MetaKey.META_DESCRIPTION, "From meta")
        self.assertEqual(
            excerpt.get_effective_meta_description(self.meta, "From excerpt"),
            "From meta",
        )

    def test_is_synced_from_excerpt(self):
        self.assertFalse(excerpt.is_meta_synced_from_excerpt(self.meta, ""))
        self.assertTrue(excerpt.is_meta_synced_from_excerpt(self.meta, "Any"))
        excerpt.save_with_excerpt_sync(
            self.meta, "Any", meta_description="Custom", meta_description_changed=True
        )
        self.assertFalse(excerpt.is_meta_synced_from_excerpt(self.meta, "Any"))


if __name__ == "__main__":
    unittest.main()
