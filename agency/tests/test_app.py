import unittest

from fastapi.testclient import TestClient

from agency.app import create_app
from agency.config import get_settings
from agency.dependencies import get_document_store, get_session_store, get_storage_client
from agency.documents import InMemoryDocumentStore
from agency.meta import MetaStore
from agency.sessions import InMemorySessionStore
from agency.storage import InMemoryStorageClient
from shared.enums import MetaCollection


class AgencyApiTests(unittest.TestCase):
    def setUp(self):
        self.documents = InMemoryDocumentStore()
        self.storage = InMemoryStorageClient(settings=get_settings())
        self.sessions = InMemorySessionStore("admin@tbp.al", "secret", 3600)
        app = create_app()
        app.dependency_overrides[get_document_store] = lambda: self.documents
        app.dependency_overrides[get_storage_client] = lambda: self.storage
        app.dependency_overrides[get_session_store] = lambda: self.sessions
        self.client = TestClient(app)

    def login(self):
        response = self.client.post(
            "/api/admin/sessions", json={"email": "admin@tbp.al", "password": "secret"}
        )
        self.assertEqual(response.status_code, 201)
        self.client.headers["Authorization"] = f"Bearer {response.json()['token']}"

    def test_admin_requires_session(self):
        self.assertEqual(self.client.get("/api/admin/service-groups").status_code, 401)
        response = self.client.post(
            "/api/admin/sessions", json={"email": "admin@tbp.al", "password": "nope"}
        )
        self.assertEqual(response.status_code, 401)

        self.login()
        self.assertEqual(self.client.get("/api/admin/sessions/current").status_code, 200)
        self.assertEqual(self.client.delete("/api/admin/sessions/current").status_code, 204)
        self.assertEqual(self.client.get("/api/admin/service-groups").status_code, 401)

    def test_entity_crud_with_overlay(self):
        self.login()
        created = self.client.post(
            "/api/admin/service-groups",
            json={"name": "Web Design", "excerpt": "Sites that sell.", "seoTitle": "Web"},
        )
        self.assertEqual(created.status_code, 201)
        group = created.json()
        self.assertEqual(group["slug"], "web-design")
        self.assertEqual(group["seoTitle"], "Web")
        self.assertEqual(group["metaDescription"], "Sites that sell.")

        path = f"/api/admin/service-groups/{group['$id']}"
        updated = self.client.put(path, json={"metaDescription": "Custom"})
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["effectiveMetaDescription"], "Custom")
        self.assertFalse(updated.json()["metaSyncedFromExcerpt"])
        self.assertEqual(updated.json()["slug"], "web-design")

        reverted = self.client.post(f"{path}/seo/revert")
        self.assertEqual(reverted.json()["metaDescription"], "Sites that sell.")

        listing = self.client.get("/api/admin/service-groups").json()
        self.assertEqual(listing["total"], 1)

        self.assertEqual(self.client.delete(path).status_code, 204)
        self.assertEqual(self.client.get(path).status_code, 404)
        self.assertEqual(self.client.get(f"{path}/meta").json(), {"meta": {}})

    def test_validation_and_unknown_kinds(self):
        self.login()
        response = self.client.post("/api/admin/service-groups", json={"name": ""})
        self.assertEqual(response.status_code, 422)
        response = self.client.post(
            "/api/admin/services", json={"name": "SEO", "color": "red"}
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.client.get("/api/admin/widgets").status_code, 404)

    def test_related_listing(self):
        self.login()
        group = self.client.post("/api/admin/service-groups", json={"name": "Branding"}).json()
        self.client.post(
            "/api/admin/services", json={"name": "Logos", "serviceGroupId": group["$id"]}
        )
        self.client.post("/api/admin/services", json={"name": "Hosting"})
        related = self.client.get(
            f"/api/admin/service-groups/{group['$id']}/related/services"
        ).json()
        self.assertEqual([row["name"] for row in related["documents"]], ["Logos"])

    def test_meta_endpoints_reject_undeclared_keys(self):
        self.login()
        group = self.client.post("/api/admin/service-groups", json={"name": "Ads"}).json()
        path = f"/api/admin/service-groups/{group['$id']}/meta"
        response = self.client.put(f"{path}/seo_keywords", json={"value": "ads, ppc"})
        self.assertEqual(response.json()["meta"]["seo_keywords"], "ads, ppc")
        self.assertEqual(self.client.put(f"{path}/project_id", json={"value": "x"}).status_code, 404)

    def test_content_blocks_meta_is_validated(self):
        self.login()
        group = self.client.post("/api/admin/service-groups", json={"name": "Web Design"}).json()
        path = f"/api/admin/service-groups/{group['$id']}/meta/content_blocks"
        response = self.client.put(path, json={"value": [{"data": {}}]})
        self.assertEqual(response.status_code, 422)

        response = self.client.put(
            path, json={"value": [{"id": "b1", "type": "stats", "order": 3, "data": {}}]}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["meta"]["content_blocks"][0]["order"], 0)

    def test_unreadable_blocks_do_not_break_pages(self):
        self.login()
        group = self.client.post("/api/admin/service-groups", json={"name": "Web Design"}).json()
        MetaStore(self.documents).set(
            MetaCollection.SERVICE_GROUPS, group["$id"], "content_blocks", [{"data": {}}]
        )
        admin = self.client.get(f"/api/admin/service-groups/{group['$id']}")
        self.assertEqual(admin.status_code, 200)
        self.assertEqual(admin.json()["contentBlocks"], [])
        public = self.client.get("/api/site/service-groups/web-design")
        self.assertEqual(public.status_code, 200)
        self.assertEqual(public.json()["sections"], [])

    def test_block_editor_actions(self):
        self.login()
        categories = self.client.get("/api/admin/blocks").json()["categories"]
        self.assertEqual(categories[0]["category"], "Hero Sections")

        response = self.client.post(
            "/api/admin/blocks/actions",
            json={"blocks": [], "action": {"action": "add", "blockType": "hero_simple"}},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["blocks"][0]["type"], "hero_simple")
        self.assertEqual(body["forms"][0]["label"], "Hero - Simple")

        response = self.client.post(
            "/api/admin/blocks/actions",
            json={"blocks": [], "action": {"action": "add", "blockType": "marquee"}},
        )
        self.assertEqual(response.status_code, 422)

        response = self.client.post(
            "/api/admin/blocks/forms",
            json={"blocks": [{"id": "x", "type": "marquee", "order": 0, "data": {}}]},
        )
        self.assertEqual(response.json()["forms"][0]["error"], "Unknown block type: marquee")

    def test_media_upload(self):
        self.login()
        response = self.client.post(
            "/api/admin/media", files={"file": ("logo.png", b"png", "image/png")}
        )
        self.assertEqual(response.status_code, 201)
        file_id = response.json()["id"]
        self.assertIn(f"/files/{file_id}/view", response.json()["view_url"])
        self.assertEqual(len(self.client.get("/api/admin/media").json()), 1)
        self.assertEqual(self.client.delete(f"/api/admin/media/{file_id}").status_code, 204)
        self.assertEqual(self.client.delete(f"/api/admin/media/{file_id}").status_code, 404)

    def test_public_pages(self):
        self.login()
        self.client.post(
            "/api/admin/service-groups",
            json={
                "name": "Web Design",
                "contentBlocks": [
                    {"id": "b1", "type": "text_content", "order": 0, "data": {"content": "Hi"}}
                ],
            },
        )
        self.client.post("/api/admin/service-groups", json={"name": "Old", "isActive": False})

        listing = self.client.get("/api/site/service-groups").json()
        self.assertEqual([row["name"] for row in listing["documents"]], ["Web Design"])

        page = self.client.get("/api/site/service-groups/web-design")
        self.assertEqual(page.status_code, 200)
        body = page.json()
        self.assertEqual(body["sections"][0]["content"], "Hi")
        self.assertEqual(body["seo"]["title"], "Web Design - Trusted Business Partners")
        self.assertEqual(body["related"], {"services": [], "projects": []})

        self.assertEqual(self.client.get("/api/site/service-groups/old").status_code, 404)
        self.assertEqual(self.client.get("/api/site/service-groups/missing").status_code, 404)
        self.assertEqual(self.client.get("/api/site/testimonials/anything").status_code, 404)

    def test_maintenance_mode(self):
        self.login()
        response = self.client.put(
            "/api/admin/settings",
            json={"values": {"maintenanceEnabled": True, "maintenanceMessage": "Back soon"}},
        )
        self.assertIs(response.json()["settings"]["maintenanceEnabled"], True)

        blocked = self.client.get("/api/site/services")
        self.assertEqual(blocked.status_code, 503)
        self.assertEqual(blocked.json()["detail"]["message"], "Back soon")
        self.assertTrue(self.client.get("/api/site/maintenance").json()["enabled"])
        self.assertEqual(self.client.get("/api/site/settings").status_code, 200)


if __name__ == "__main__":
    unittest.main()
