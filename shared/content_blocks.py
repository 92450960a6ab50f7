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
Ordered content blocks and the editor transitions over them.

Every transition takes the current list and returns a new one. The input list
and its blocks are never mutated, and `order` always equals list position.
"""

import copy
import json
import uuid
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Optional, Union

from dacite import Config, DaciteError, from_dict

from shared.block_registry import (
    BlockDefinition,
    GalleryField,
    ImageField,
    RepeaterField,
    get_block_definition,
)


class UnknownBlockTypeError(ValueError):
    pass


@dataclass
class ContentBlock:
    id: str
    type: str
    order: int
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def definition(self) -> Optional[BlockDefinition]:
        return get_block_definition(self.type)

    def as_dict(self) -> dict:
        return asdict(self)


def new_block_id() -> str:
    return f"block-{uuid.uuid4().hex}"


def renumber(blocks: list[ContentBlock]) -> list[ContentBlock]:
    return [
        block if block.order == index else replace(block, order=index)
        for index, block in enumerate(blocks)
    ]


def blocks_from_value(value: Any) -> list[ContentBlock]:
    """
    Reads blocks from an overlay value.

    Accepts the decoded list, a JSON string of it, or an empty value. Entries
    are kept in list position and renumbered. Anything that is not a list of
    typed block mappings raises ValueError.
    """
    if not value:
        return []
    if isinstance(value, str):
        value = json.loads(value)
    blocks = []
    for item in value:
        if isinstance(item, ContentBlock):
            blocks.append(item)
            continue
        if not isinstance(item, dict) or not item.get("type"):
            raise ValueError(f"Content block without a type: {item!r}")
        item = dict(item)
        item.setdefault("id", new_block_id())
        item.setdefault("order", len(blocks))
        item["data"] = item.get("data") or {}
        try:
            block = from_dict(
                data_class=ContentBlock, data=item, config=Config(check_types=False)
            )
        except DaciteError as exc:
            raise ValueError(f"Malformed content block: {exc}") from exc
        blocks.append(block)
    return renumber(blocks)


def blocks_to_value(blocks: list[ContentBlock]) -> list[dict]:
    return [block.as_dict() for block in renumber(blocks)]


def _check_index(blocks: list, index: int) -> None:
    if index < 0 or index >= len(blocks):
        raise IndexError(f"Block index {index} out of range")


def _with_data(
    blocks: list[ContentBlock], index: int, updates: dict[str, Any]
) -> list[ContentBlock]:
    _check_index(blocks, index)
    block = blocks[index]
    data = copy.deepcopy(block.data)
    data.update(updates)
    result = list(blocks)
    result[index] = replace(block, data=data)
    return result


def add_block(
    blocks: list[ContentBlock], block_type: Union[str, BlockDefinition]
) -> list[ContentBlock]:
    definition = (
        block_type
        if isinstance(block_type, BlockDefinition)
        else get_block_definition(block_type)
    )
    if definition is None:
        raise UnknownBlockTypeError(f"Unknown block type: {block_type}")
    block = ContentBlock(
        id=new_block_id(),
        type=definition.id,
        order=len(blocks),
        data=definition.initial_data(),
    )
    return renumber(list(blocks) + [block])


def update_field(
    blocks: list[ContentBlock], index: int, field_name: str, value: Any
) -> list[ContentBlock]:
    return _with_data(blocks, index, {field_name: value})


def move_up(blocks: list[ContentBlock], index: int) -> list[ContentBlock]:
    if index <= 0:
        return list(blocks)
    _check_index(blocks, index)
    result = list(blocks)
    result[index - 1], result[index] = result[index], result[index - 1]
    return renumber(result)


def move_down(blocks: list[ContentBlock], index: int) -> list[ContentBlock]:
    if index >= len(blocks) - 1:
        return list(blocks)
    _check_index(blocks, index)
    result = list(blocks)
    result[index], result[index + 1] = result[index + 1], result[index]
    return renumber(result)


def delete_block(
    blocks: list[ContentBlock], index: int, confirm: Callable[[], bool]
) -> list[ContentBlock]:
    """Removes the block at `index` once `confirm()` agrees."""
    _check_index(blocks, index)
    if not confirm():
        return list(blocks)
    return renumber(blocks[:index] + blocks[index + 1 :])


def _repeater(blocks: list[ContentBlock], index: int, field_name: str) -> RepeaterField:
    _check_index(blocks, index)
    definition = blocks[index].definition
    repeater = definition.get_field(field_name) if definition else None
    if not isinstance(repeater, RepeaterField):
        raise KeyError(f"{blocks[index].type} has no repeater field {field_name!r}")
    return repeater


def add_repeater_item(
    blocks: list[ContentBlock], index: int, field_name: str
) -> list[ContentBlock]:
    repeater = _repeater(blocks, index, field_name)
    items = copy.deepcopy(repeater.normalize(blocks[index].data.get(field_name)))
    items.append(repeater.new_item())
    return _with_data(blocks, index, {field_name: items})


def remove_repeater_item(
    blocks: list[ContentBlock], index: int, field_name: str, item_index: int
) -> list[ContentBlock]:
    repeater = _repeater(blocks, index, field_name)
    items = copy.deepcopy(repeater.normalize(blocks[index].data.get(field_name)))
    _check_index(items, item_index)
    del items[item_index]
    return _with_data(blocks, index, {field_name: items})


def update_repeater_item(
    blocks: list[ContentBlock],
    index: int,
    field_name: str,
    item_index: int,
    sub_field: str,
    value: Any,
) -> list[ContentBlock]:
    repeater = _repeater(blocks, index, field_name)
    items = copy.deepcopy(repeater.normalize(blocks[index].data.get(field_name)))
    _check_index(items, item_index)
    items[item_index][sub_field] = value
    return _with_data(blocks, index, {field_name: items})


def _field_of_kind(blocks: list[ContentBlock], index: int, field_name: str, kind: type):
    _check_index(blocks, index)
    definition = blocks[index].definition
    block_field = definition.get_field(field_name) if definition else None
    if not isinstance(block_field, kind):
        raise KeyError(
            f"{blocks[index].type} has no {kind.type.value} field {field_name!r}"
        )
    return block_field


def select_image(
    blocks: list[ContentBlock], index: int, field_name: str, file_id: str
) -> list[ContentBlock]:
    """Sets a single-image field. An empty id clears it."""
    _field_of_kind(blocks, index, field_name, ImageField)
    return _with_data(blocks, index, {field_name: file_id or ""})


def add_gallery_image(
    blocks: list[ContentBlock], index: int, field_name: str, file_id: str
) -> list[ContentBlock]:
    gallery = _field_of_kind(blocks, index, field_name, GalleryField)
    images = gallery.normalize(blocks[index].data.get(field_name))
    return _with_data(blocks, index, {field_name: images + [file_id]})


def remove_gallery_image(
    blocks: list[ContentBlock], index: int, field_name: str, image_index: int
) -> list[ContentBlock]:
    gallery = _field_of_kind(blocks, index, field_name, GalleryField)
    images = gallery.normalize(blocks[index].data.get(field_name))
    _check_index(images, image_index)
    return _with_data(
        blocks,
        index,
        {field_name: images[:image_index] + images[image_index + 1 :]},
    )
