import unittest

from agency import relationships
from agency.documents import InMemoryDocumentStore
from agency.entities import CASE_STUDIES, PROJECTS, SERVICE_GROUPS, SERVICES, TESTIMONIALS
from agency.meta import MetaStore
from shared.enums import EntityType, MetaKey


class RelationshipTests(unittest.TestCase):
    def setUp(self):
        self.documents = InMemoryDocumentStore()
        self.meta = MetaStore(self.documents)

    def _service(self, service_id, group_id=None):
        self.documents.create_document(
            SERVICES.collection, service_id, {"name": service_id, "isActive": True}
        )
        if group_id:
            relationships.set_relationship(
                self.meta, SERVICES, service_id, MetaKey.SERVICE_GROUP_ID, group_id
            )

    def test_reverse_lookup_finds_exactly_the_linked_services(self):
        expected = set()
        for index in range(12):
            group = "G" if index in (1, 3, 4, 8, 11) else f"other-{index % 3}"
            self._service(f"svc-{index}", group)
            if group == "G":
                expected.add(f"svc-{index}")
        related = relationships.find_related(
            self.documents, self.meta, SERVICES, MetaKey.SERVICE_GROUP_ID, "G"
        )
        self.assertEqual(len(related), 5)
        self.assertEqual({doc["$id"] for doc in related}, expected)

    def test_dangling_ids_are_skipped(self):
        self._service("svc-1", "G")
        self._service("svc-2", "G")
        self.documents.delete_document(SERVICES.collection, "svc-2")
        related = relationships.find_related(
            self.documents, self.meta, SERVICES, MetaKey.SERVICE_GROUP_ID, "G"
        )
        self.assertEqual([doc["$id"] for doc in related], ["svc-1"])

    def test_get_and_remove_relationship(self):
        self._service("svc-1", "G")
        self.assertEqual(
            relationships.get_relationship(
                self.meta, SERVICES, "svc-1", MetaKey.SERVICE_GROUP_ID
            ),
            "G",
        )
        self.assertTrue(
            relationships.remove_relationship(
                self.meta, SERVICES, "svc-1", MetaKey.SERVICE_GROUP_ID
            )
        )
        self.assertIsNone(
            relationships.get_relationship(
                self.meta, SERVICES, "svc-1", MetaKey.SERVICE_GROUP_ID
            )
        )

    def test_empty_id_removes_relationship(self):
        self._service("svc-1", "G")
        relationships.set_relationship(
            self.meta, SERVICES, "svc-1", MetaKey.SERVICE_GROUP_ID, ""
        )
        self.assertEqual(self.meta.get_all(SERVICES.meta_collection, "svc-1"), {})

    def test_relationship_key_must_belong_to_kind(self):
        with self.assertRaises(KeyError):
            relationships.set_relationship(
                self.meta, SERVICE_GROUPS, "g1", MetaKey.PROJECT_ID, "p1"
            )

    def test_testimonial_relationship(self):
        relationships.set_testimonial_relationship(
            self.meta, "t1", "project", "p1"
        )
        link = relationships.get_testimonial_relationship(self.meta, "t1")
        self.assertEqual(link.entity_type, EntityType.PROJECT)
        self.assertEqual(link.entity_id, "p1")
        self.assertTrue(relationships.remove_testimonial_relationship(self.meta, "t1"))
        self.assertIsNone(relationships.get_testimonial_relationship(self.meta, "t1"))

    def test_testimonial_cannot_point_at_pages(self):
        with self.assertRaises(ValueError):
            relationships.set_testimonial_relationship(self.meta, "t1", "page", "x")

    def test_testimonials_for_filters_by_entity_type(self):
        for testimonial_id, entity_type in (
            ("t1", "project"),
            ("t2", "service"),
            ("t3", "project"),
        ):
            self.documents.create_document(
                TESTIMONIALS.collection, testimonial_id, {"clientName": testimonial_id}
            )
            relationships.set_testimonial_relationship(
                self.meta, testimonial_id, entity_type, "shared-id"
            )
        linked = relationships.testimonials_for(
            self.documents, self.meta, EntityType.PROJECT, "shared-id"
        )
        self.assertEqual(sorted(doc["$id"] for doc in linked), ["t1", "t3"])

    def test_relation_key(self):
        self.assertEqual(
            relationships.relation_key(SERVICE_GROUPS, SERVICES), MetaKey.SERVICE_GROUP_ID
        )
        self.assertEqual(
            relationships.relation_key(PROJECTS, CASE_STUDIES), MetaKey.PROJECT_ID
        )
        self.assertIsNone(relationships.relation_key(PROJECTS, SERVICES))


if __name__ == "__main__":
    unittest.main()
