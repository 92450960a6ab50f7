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

import re
from typing import Any, Callable

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    """seoTitle -> seo_title"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    """seo_title -> seoTitle"""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


_CONVERTERS: dict[str, Callable[[str], str]] = {
    "camel_to_snake": camel_to_snake,
    "snake_to_camel": snake_to_camel,
}


def convert_keys(data: Any, direction: str) -> Any:
    """
    Recursively renames the keys of dicts (also inside lists).

    Args:
        data: A dict, list or scalar.
        direction: "camel_to_snake" or "snake_to_camel".

    Returns:
        A new structure with renamed keys. Keys starting with "$" are kept.
    """
    converter = _CONVERTERS[direction]
    if isinstance(data, dict):
        return {
            (key if key.startswith("$") else converter(key)): convert_keys(
                value, direction
            )
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    return data
