"""
Admin side of the content block system: dynamic form descriptions built from
the block registry, and dispatch of editor actions onto the block list.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from shared import content_blocks
from shared.block_registry import (
    FieldDefinition,
    GalleryField,
    ImageField,
    RepeaterField,
    RichTextField,
    SelectField,
    TextareaField,
    TextField,
    ToggleField,
    blocks_by_category,
)
from shared.content_blocks import ContentBlock

logger = logging.getLogger(__name__)

UrlResolver = Callable[[str], str]


def describe_field(
    block_field: FieldDefinition, value: Any, resolve_url: UrlResolver
) -> dict:
    """Input description for one field, with the current value normalized."""
    value = block_field.normalize(value)
    described = block_field.as_dict()
    match block_field:
        case TextField() | TextareaField() | RichTextField():
            described["value"] = "" if value is None else str(value)
        case SelectField():
            described["value"] = value
        case ToggleField():
            described["value"] = value
        case ImageField():
            described["value"] = value or ""
            described["previewUrl"] = resolve_url(value) if value else ""
        case GalleryField():
            described["value"] = value
            described["images"] = [
                {"id": file_id, "previewUrl": resolve_url(file_id)} for file_id in value
            ]
        case RepeaterField():
            described["value"] = value
            described["items"] = [
                [
                    describe_field(sub_field, item.get(sub_field.name), resolve_url)
                    for sub_field in block_field.fields
                ]
                for item in value
            ]
        case _:
            raise TypeError(f"Unhandled field kind {type(block_field).__name__}")
    return described


def build_block_form(
    block: ContentBlock, index: int, total: int, resolve_url: UrlResolver
) -> dict:
    form = {
        "id": block.id,
        "type": block.type,
        "order": block.order,
        "canMoveUp": index > 0,
        "canMoveDown": index < total - 1,
    }
    definition = block.definition
    if definition is None:
        logger.warning("Unknown block type %s in editor", block.type)
        form["error"] = f"Unknown block type: {block.type}"
        return form
    form["label"] = definition.label
    form["fields"] = [
        describe_field(block_field, block.data.get(block_field.name), resolve_url)
        for block_field in definition.fields
    ]
    return form


def build_editor(blocks: list[ContentBlock], resolve_url: UrlResolver) -> list[dict]:
    return [
        build_block_form(block, index, len(blocks), resolve_url)
        for index, block in enumerate(blocks)
    ]


def registry_listing() -> list[dict]:
    """Block picker contents grouped by category."""
    return [
        {
            "category": category.value,
            "blocks": [
                {"id": block.id, "label": block.label} for block in definitions
            ],
        }
        for category, definitions in blocks_by_category().items()
    ]


def apply_action(blocks: list[ContentBlock], action: Any) -> list[ContentBlock]:
    """Applies one editor action (an object with an `action` name) to the list."""
    match action.action:
        case "add":
            return content_blocks.add_block(blocks, action.block_type)
        case "update_field":
            return content_blocks.update_field(
                blocks, action.index, action.field_name, action.value
            )
        case "move_up":
            return content_blocks.move_up(blocks, action.index)
        case "move_down":
            return content_blocks.move_down(blocks, action.index)
        case "delete":
            return content_blocks.delete_block(
                blocks, action.index, lambda: action.confirmed
            )
        case "add_repeater_item":
            return content_blocks.add_repeater_item(blocks, action.index, action.field_name)
        case "remove_repeater_item":
            return content_blocks.remove_repeater_item(
                blocks, action.index, action.field_name, _required(action.item_index)
            )
        case "update_repeater_item":
            return content_blocks.update_repeater_item(
                blocks,
                action.index,
                action.field_name,
                _required(action.item_index),
                _required(action.sub_field),
                action.value,
            )
        case "select_image":
            return content_blocks.select_image(
                blocks, action.index, action.field_name, action.file_id
            )
        case "add_gallery_image":
            return content_blocks.add_gallery_image(
                blocks, action.index, action.field_name, action.file_id
            )
        case "remove_gallery_image":
            return content_blocks.remove_gallery_image(
                blocks, action.index, action.field_name, _required(action.image_index)
            )
    raise ValueError(f"Unknown block action {action.action!r}")


def _required(value):
    if value is None:
        raise ValueError("Missing parameter for block action")
    return value
