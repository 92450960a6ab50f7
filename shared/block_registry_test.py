# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import unittest

from shared import block_registry
from shared.block_registry import (
    BlockCategory,
    GalleryField,
    RepeaterField,
    SelectField,
    ToggleField,
)


class BlockRegistryTest(unittest.TestCase):

    def test_block_ids_are_unique(self):
        ids = [block.id for block in block_registry.BLOCK_TYPES]
        self.assertEqual(len(ids), len(set(ids)))

    def test_blocks_by_category_groups_every_block(self):
        grouped = block_registry.blocks_by_category()
        self.assertEqual(
            sum(len(blocks) for blocks in grouped.values()),
            len(block_registry.BLOCK_TYPES),
        )
        self.assertEqual(
            [block.id for block in grouped[BlockCategory.CALL_TO_ACTION]],
            ["cta_simple", "cta_boxed"],
        )
        self.assertEqual(list(grouped)[0], BlockCategory.HERO)

    def test_get_block_definition(self):
        block = block_registry.get_block_definition("text_image")
        self.assertEqual(block.label, "Text + Image")
        position = block.get_field("imagePosition")
        self.assertIsInstance(position, SelectField)
        self.assertEqual(position.default, "right")
        self.assertEqual([o.value for o in position.options], ["left", "right"])
        self.assertIsNone(block_registry.get_block_definition("nope"))

    def test_initial_data_uses_defaults_per_field_kind(self):
        """Defaults win, then [] for lists, False for toggles, '' otherwise."""
        data = block_registry.get_block_definition("features_grid").initial_data()
        self.assertEqual(
            data, {"title": "", "subtitle": "", "features": [], "columns": "3"}
        )
        data = block_registry.get_block_definition("testimonials_slider").initial_data()
        self.assertEqual(data, {"title": "", "showRelated": True})
        data = block_registry.get_block_definition("loop_carousel").initial_data()
        self.assertIs(data["autoplay"], False)
        self.assertIs(data["loop"], True)
        self.assertEqual(data["limit"], "10")
        data = block_registry.get_block_definition("gallery").initial_data()
        self.assertEqual(data["images"], [])

    def test_gallery_reads_legacy_comma_joined_ids(self):
        gallery = GalleryField("images", "Images")
        self.assertEqual(gallery.normalize("a,b,,c"), ["a", "b", "c"])
        self.assertEqual(gallery.normalize(["a", "b"]), ["a", "b"])
        self.assertEqual(gallery.normalize(""), [])

    def test_toggle_normalize(self):
        toggle = ToggleField("loop", "Loop", default=True)
        self.assertTrue(toggle.normalize("true"))
        self.assertFalse(toggle.normalize("false"))
        self.assertTrue(toggle.normalize(None))

    def test_repeater_new_item_blanks_every_sub_field(self):
        stats = block_registry.get_block_definition("stats").get_field("stats")
        self.assertIsInstance(stats, RepeaterField)
        self.assertEqual(stats.new_item(), {"number": "", "label": "", "suffix": ""})

    def test_as_dict(self):
        payload = block_registry.get_block_definition("icon_list").as_dict()
        self.assertEqual(payload["category"], "Features & Lists")
        items = payload["fields"][1]
        self.assertEqual(items["type"], "repeater")
        self.assertEqual(items["fields"][0]["name"], "text")
        self.assertTrue(items["required"])


if __name__ == "__main__":
    unittest.main()
