import unittest

from agency.documents import DocumentStoreError, InMemoryDocumentStore
from agency.site_settings import SETTINGS_COLLECTION, SiteSettingsStore
from shared.enums import SettingKey


class BrokenDocumentStore(InMemoryDocumentStore):
    def list_documents(self, collection, queries=()):
        raise DocumentStoreError("unavailable")


class SiteSettingsTests(unittest.TestCase):
    def setUp(self):
        self.documents = InMemoryDocumentStore()
        self.settings = SiteSettingsStore(self.documents)

    def test_set_is_an_upsert(self):
        self.settings.set(SettingKey.WEBSITE_NAME, "TBP")
        self.settings.set(SettingKey.WEBSITE_NAME, "Trusted Business Partners")
        rows = self.documents.list_documents(SETTINGS_COLLECTION).documents
        self.assertEqual(len(rows), 1)
        self.assertEqual(
            self.settings.get(SettingKey.WEBSITE_NAME), "Trusted Business Partners"
        )

    def test_values_keep_their_types(self):
        self.settings.set_multiple(
            {
                SettingKey.MAINTENANCE_ENABLED: True,
                SettingKey.MAINTENANCE_CONTACTS: [{"label": "Email", "value": "a@b.al"}],
                SettingKey.PHONE: "+355 69 000 0000",
            }
        )
        values = self.settings.get_all()
        self.assertIs(values["maintenanceEnabled"], True)
        self.assertEqual(values["maintenanceContacts"][0]["label"], "Email")
        self.assertEqual(values["phone"], "+355 69 000 0000")
        self.assertTrue(self.settings.is_maintenance_enabled())

    def test_public_settings_hide_private_keys(self):
        self.settings.set_multiple(
            {SettingKey.EMAIL: "hello@tbp.al", SettingKey.MAINTENANCE_ENABLED: True}
        )
        public = self.settings.public_settings()
        self.assertEqual(public["email"], "hello@tbp.al")
        self.assertEqual(public["logoLight"], "")
        self.assertNotIn("maintenanceEnabled", public)

    def test_delete(self):
        self.settings.set(SettingKey.FAVICON, "file-1")
        self.assertTrue(self.settings.delete(SettingKey.FAVICON))
        self.assertFalse(self.settings.delete(SettingKey.FAVICON))
        self.assertEqual(self.settings.get(SettingKey.FAVICON, "none"), "none")

    def test_reads_fail_open(self):
        settings = SiteSettingsStore(BrokenDocumentStore())
        with self.assertLogs("agency.site_settings", level="ERROR"):
            self.assertEqual(settings.get_all(), {})
        with self.assertLogs("agency.site_settings", level="ERROR"):
            self.assertFalse(settings.is_maintenance_enabled())


if __name__ == "__main__":
    unittest.main()
