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

SLUG_MAX_LENGTH = 100


def slugify(value: str) -> str:
    """Lower-cases and collapses everything but [a-z0-9] into single dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower())
    return slug.strip("-")[:SLUG_MAX_LENGTH]


def humanize_variable_name(name: str) -> str:
    """Turns e.g. "tenant_NAME" into "Tenant Name"."""
    words = [word for word in re.split(r"[_\s]+", name) if word]
    return " ".join(word[0].upper() + word[1:].lower() for word in words)


def snake_to_camel(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(value: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()
