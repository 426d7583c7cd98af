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


from typing import Any, Literal

from shared.string_utils import camel_to_snake, snake_to_camel

_CONVERTERS = {
    "snake_to_camel": snake_to_camel,
    "camel_to_snake": camel_to_snake,
}


def convert_keys(
    obj: Any, direction: Literal["snake_to_camel", "camel_to_snake"]
) -> Any:
    """Recursively converts dict keys of a JSON-like payload."""
    convert = _CONVERTERS[direction]
    if isinstance(obj, dict):
        return {
            convert(key) if isinstance(key, str) else key: convert_keys(value, direction)
            for key, value in obj.items()
        }
    if isinstance(obj, list):
        return [convert_keys(item, direction) for item in obj]
    return obj
