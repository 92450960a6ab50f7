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
"""
Static catalogue of content block definitions.

Each block type declares the fields its `data` mapping carries. Field kinds are
separate dataclasses so callers dispatch on the class instead of a type string.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, Optional


class FieldType(StrEnum):
    TEXT = "text"
    TEXTAREA = "textarea"
    RICHTEXT = "richtext"
    SELECT = "select"
    TOGGLE = "toggle"
    IMAGE = "image"
    GALLERY = "gallery"
    REPEATER = "repeater"


class BlockCategory(StrEnum):
    HERO = "Hero Sections"
    CONTENT = "Content"
    MEDIA = "Media"
    FEATURES = "Features & Lists"
    CALL_TO_ACTION = "Call to Action"
    TESTIMONIALS = "Testimonials"
    RELATIONSHIPS = "Relationships"


@dataclass(frozen=True)
class FieldDefinition:
    """Base for every field kind. Subclasses set `type`."""

    type: ClassVar[FieldType]

    name: str
    label: str
    required: bool = False
    default: Any = None

    def initial_value(self) -> Any:
        """Value a freshly added block starts with."""
        if self.default is not None:
            return self.default
        return ""

    def normalize(self, value: Any) -> Any:
        """Coerces a stored value into the shape this field works with."""
        if value is None:
            return self.initial_value()
        return value

    def as_dict(self) -> dict:
        data = {
            "name": self.name,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
        }
        if self.default is not None:
            data["default"] = self.default
        return data


@dataclass(frozen=True)
class TextField(FieldDefinition):
    type: ClassVar[FieldType] = FieldType.TEXT


@dataclass(frozen=True)
class TextareaField(FieldDefinition):
    type: ClassVar[FieldType] = FieldType.TEXTAREA


@dataclass(frozen=True)
class RichTextField(FieldDefinition):
    type: ClassVar[FieldType] = FieldType.RICHTEXT


@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str


@dataclass(frozen=True)
class SelectField(FieldDefinition):
    type: ClassVar[FieldType] = FieldType.SELECT

    options: tuple[SelectOption, ...] = ()

    def normalize(self, value: Any) -> Any:
        if value in (None, ""):
            return self.initial_value()
        return str(value)

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["options"] = [
            {"value": option.value, "label": option.label} for option in self.options
        ]
        return data


@dataclass(frozen=True)
class ToggleField(FieldDefinition):
    type: ClassVar[FieldType] = FieldType.TOGGLE

    description: Optional[str] = None

    def initial_value(self) -> Any:
        if self.default is not None:
            return self.default
        return False

    def normalize(self, value: Any) -> Any:
        if value is None:
            return self.initial_value()
        return value is True or value == "true"

    def as_dict(self) -> dict:
        data = super().as_dict()
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class ImageField(FieldDefinition):
    """Holds a single storage file id."""

    type: ClassVar[FieldType] = FieldType.IMAGE


@dataclass(frozen=True)
class GalleryField(FieldDefinition):
    """Holds a list of storage file ids."""

    type: ClassVar[FieldType] = FieldType.GALLERY

    def initial_value(self) -> Any:
        if self.default is not None:
            return list(self.default)
        return []

    def normalize(self, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            # Older rows stored galleries as comma-joined ids.
            return [file_id for file_id in value.split(",") if file_id]
        return [str(file_id) for file_id in value if file_id]


@dataclass(frozen=True)
class RepeaterField(FieldDefinition):
    type: ClassVar[FieldType] = FieldType.REPEATER

    fields: tuple[FieldDefinition, ...] = ()

    def initial_value(self) -> Any:
        if self.default is not None:
            return [dict(item) for item in self.default]
        return []

    def normalize(self, value: Any) -> list[dict]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def new_item(self) -> dict:
        return {sub_field.name: "" for sub_field in self.fields}

    def sub_field(self, name: str) -> Optional[FieldDefinition]:
        for sub_field in self.fields:
            if sub_field.name == name:
                return sub_field
        return None

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["fields"] = [sub_field.as_dict() for sub_field in self.fields]
        return data


@dataclass(frozen=True)
class BlockDefinition:
    id: str
    label: str
    category: BlockCategory
    fields: tuple[FieldDefinition, ...] = ()

    def get_field(self, name: str) -> Optional[FieldDefinition]:
        for block_field in self.fields:
            if block_field.name == name:
                return block_field
        return None

    def initial_data(self) -> dict:
        return {block_field.name: block_field.initial_value() for block_field in self.fields}

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "category": self.category.value,
            "fields": [block_field.as_dict() for block_field in self.fields],
        }


def _options(*pairs: tuple[str, str]) -> tuple[SelectOption, ...]:
    return tuple(SelectOption(value=value, label=label) for value, label in pairs)


_COLUMN_OPTIONS = _options(("2", "2 Columns"), ("3", "3 Columns"), ("4", "4 Columns"))

_LOOP_ENTITY_OPTIONS = _options(
    ("services", "Services"),
    ("projects", "Projects"),
    ("caseStudies", "Case Studies"),
)

_LOOP_FILTER_OPTIONS = _options(
    ("all", "All"),
    ("current_service_group", "Current Service Group"),
    ("specific_service_group", "Specific Service Group"),
)


def _cta_fields() -> tuple[FieldDefinition, ...]:
    return (
        TextField("title", "Title", required=True),
        TextareaField("description", "Description"),
        TextField("buttonText", "Button Text", required=True),
        TextField("buttonLink", "Button Link", required=True),
    )


def _loop_source_fields() -> tuple[FieldDefinition, ...]:
    return (
        TextField("title", "Section Title"),
        SelectField(
            "entityType",
            "Content Type",
            required=True,
            default="services",
            options=_LOOP_ENTITY_OPTIONS,
        ),
        SelectField(
            "filterBy", "Filter By", default="all", options=_LOOP_FILTER_OPTIONS
        ),
        TextField("serviceGroupId", "Service Group ID (for specific filter)"),
    )


BLOCK_TYPES: tuple[BlockDefinition, ...] = (
    BlockDefinition(
        id="hero_simple",
        label="Hero - Simple",
        category=BlockCategory.HERO,
        fields=(
            TextField("title", "Title", required=True),
            TextareaField("subtitle", "Subtitle"),
            ImageField("backgroundImage", "Background Image"),
            TextField("ctaText", "Button Text"),
            TextField("ctaLink", "Button Link"),
        ),
    ),
    BlockDefinition(
        id="text_content",
        label="Text Content",
        category=BlockCategory.CONTENT,
        fields=(
            TextField("title", "Title"),
            RichTextField("content", "Content", required=True),
        ),
    ),
    BlockDefinition(
        id="text_image",
        label="Text + Image",
        category=BlockCategory.CONTENT,
        fields=(
            TextField("title", "Title"),
            RichTextField("content", "Content", required=True),
            ImageField("image", "Image", required=True),
            SelectField(
                "imagePosition",
                "Image Position",
                default="right",
                options=_options(("left", "Left"), ("right", "Right")),
            ),
        ),
    ),
    BlockDefinition(
        id="two_column_text",
        label="Two Column Text",
        category=BlockCategory.CONTENT,
        fields=(
            TextField("title", "Title"),
            RichTextField("leftContent", "Left Column", required=True),
            RichTextField("rightContent", "Right Column", required=True),
        ),
    ),
    BlockDefinition(
        id="gallery",
        label="Image Gallery",
        category=BlockCategory.MEDIA,
        fields=(
            TextField("title", "Title"),
            GalleryField("images", "Images", required=True),
            SelectField("columns", "Columns", default="3", options=_COLUMN_OPTIONS),
        ),
    ),
    BlockDefinition(
        id="video",
        label="Video Embed",
        category=BlockCategory.MEDIA,
        fields=(
            TextField("title", "Title"),
            TextField("videoUrl", "Video URL (YouTube/Vimeo)", required=True),
            TextareaField("description", "Description"),
        ),
    ),
    BlockDefinition(
        id="features_grid",
        label="Features Grid",
        category=BlockCategory.FEATURES,
        fields=(
            TextField("title", "Section Title"),
            TextareaField("subtitle", "Subtitle"),
            RepeaterField(
                "features",
                "Features",
                required=True,
                fields=(
                    TextField("icon", "Icon Name"),
                    TextField("title", "Title", required=True),
                    TextareaField("description", "Description", required=True),
                ),
            ),
            SelectField("columns", "Columns", default="3", options=_COLUMN_OPTIONS),
        ),
    ),
    BlockDefinition(
        id="icon_list",
        label="Icon List",
        category=BlockCategory.FEATURES,
        fields=(
            TextField("title", "Title"),
            RepeaterField(
                "items",
                "List Items",
                required=True,
                fields=(TextField("text", "Text", required=True),),
            ),
        ),
    ),
    BlockDefinition(
        id="stats",
        label="Statistics",
        category=BlockCategory.FEATURES,
        fields=(
            TextField("title", "Section Title"),
            RepeaterField(
                "stats",
                "Statistics",
                required=True,
                fields=(
                    TextField("number", "Number", required=True),
                    TextField("label", "Label", required=True),
                    TextField("suffix", "Suffix (e.g., +, %)"),
                ),
            ),
        ),
    ),
    BlockDefinition(
        id="cta_simple",
        label="CTA - Simple",
        category=BlockCategory.CALL_TO_ACTION,
        fields=_cta_fields(),
    ),
    BlockDefinition(
        id="cta_boxed",
        label="CTA - Boxed",
        category=BlockCategory.CALL_TO_ACTION,
        fields=_cta_fields()
        + (
            SelectField(
                "backgroundColor",
                "Background Color",
                default="accent",
                options=_options(
                    ("accent", "Accent"),
                    ("primary", "Primary"),
                    ("secondary", "Secondary"),
                ),
            ),
        ),
    ),
    BlockDefinition(
        id="testimonials_slider",
        label="Testimonials Slider",
        category=BlockCategory.TESTIMONIALS,
        fields=(
            TextField("title", "Section Title"),
            ToggleField(
                "showRelated",
                "Show Related Testimonials",
                default=True,
                description="Show testimonials related to this entity first",
            ),
        ),
    ),
    BlockDefinition(
        id="loop_grid",
        label="Loop Grid",
        category=BlockCategory.RELATIONSHIPS,
        fields=_loop_source_fields()
        + (
            TextField("limit", "Number of Items", default="6"),
            TextField("columnsDesktop", "Columns (Desktop)", default="3"),
            TextField("columnsTablet", "Columns (Tablet)", default="2"),
            TextField("columnsMobile", "Columns (Mobile)", default="1"),
            TextField("rows", "Rows", default="2"),
        ),
    ),
    BlockDefinition(
        id="loop_carousel",
        label="Loop Carousel",
        category=BlockCategory.RELATIONSHIPS,
        fields=_loop_source_fields()
        + (
            TextField("limit", "Number of Items", default="10"),
            TextField("slidesPerViewDesktop", "Slides Per View (Desktop)", default="3"),
            TextField("slidesPerViewTablet", "Slides Per View (Tablet)", default="2"),
            TextField("slidesPerViewMobile", "Slides Per View (Mobile)", default="1"),
            ToggleField("autoplay", "Autoplay", default=False),
            ToggleField("loop", "Loop", default=True),
        ),
    ),
)

_BLOCKS_BY_ID = {block.id: block for block in BLOCK_TYPES}


def blocks_by_category() -> dict[BlockCategory, list[BlockDefinition]]:
    """Groups the catalogue by category, keeping catalogue order."""
    grouped: dict[BlockCategory, list[BlockDefinition]] = {}
    for block in BLOCK_TYPES:
        grouped.setdefault(block.category, []).append(block)
    return grouped


def get_block_definition(block_id: str) -> Optional[BlockDefinition]:
    return _BLOCKS_BY_ID.get(block_id)
