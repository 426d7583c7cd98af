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


"""Derives stable catalog records (ids, paths, keywords) from scanned files."""

import hashlib
import os
import re
from typing import List, Optional

from shared.string_utils import slugify
from shared.types import MetadataOverride, SourceFile, Template, TemplateVariable

TEMPLATE_ID_SLUG_LENGTH = 60
SOURCE_HASH_LENGTH = 8
MAX_FILENAME_KEYWORDS = 10
MIN_KEYWORD_LENGTH = 3
STATIC_TEMPLATE_MINUTES = 2
MIN_TEMPLATE_MINUTES = 5
MINUTES_PER_VARIABLE = 2


def stable_template_id(name: str, source_key: str) -> str:
    """
    Builds a template id that only depends on the file's name and location, so
    re-importing the same file always targets the same storage object, row and
    search document.
    """
    digest = hashlib.sha1(source_key.encode("utf-8")).hexdigest()[:SOURCE_HASH_LENGTH]
    slug = slugify(name)[:TEMPLATE_ID_SLUG_LENGTH].strip("-") or "template"
    return f"tpl-{slug}-{digest}"


def category_id_for(slug: str) -> str:
    return f"cat-{slug}"


def storage_path_for(prefix: str, category_slug: str, template_id: str) -> str:
    parts = [p.strip("/") for p in (prefix, category_slug) if p and p.strip("/")]
    return "/".join(parts + [f"{template_id}.docx"])


def template_name_for(source_file: SourceFile) -> str:
    return os.path.splitext(os.path.basename(source_file.path))[0].strip()


def build_keywords(category_name: str, file_stem: str) -> List[str]:
    words = [
        word
        for word in re.split(r"[\s_-]+", file_stem.lower())
        if len(word) >= MIN_KEYWORD_LENGTH
    ][:MAX_FILENAME_KEYWORDS]
    keywords: List[str] = []
    for keyword in [category_name.lower(), *words]:
        if keyword and keyword not in keywords:
            keywords.append(keyword)
    return keywords


def build_description(name: str, variable_count: int) -> str:
    if variable_count == 0:
        return f"{name} - Ready to use template"
    plural = "s" if variable_count > 1 else ""
    return f"{name} - {variable_count} customizable field{plural}"


def estimate_minutes(variable_count: int) -> int:
    if variable_count == 0:
        return STATIC_TEMPLATE_MINUTES
    return max(MIN_TEMPLATE_MINUTES, variable_count * MINUTES_PER_VARIABLE)


def build_template(
    *,
    source_file: SourceFile,
    category_id: str,
    category_name: str,
    category_slug: str,
    variables: List[TemplateVariable],
    storage_prefix: str,
    override: Optional[MetadataOverride] = None,
) -> Template:
    """Assembles the catalog record for one scanned file."""
    file_stem = template_name_for(source_file)
    name = (override.name if override and override.name else "") or file_stem
    template_id = stable_template_id(file_stem, source_file.source_key)

    description = build_description(name, len(variables))
    minutes = estimate_minutes(len(variables))
    if override:
        description = override.description or description
        minutes = override.estimated_minutes or minutes

    return Template(
        id=template_id,
        category_id=category_id,
        category_name=category_name,
        name=name,
        slug=slugify(name),
        description=description,
        keywords=build_keywords(category_name, file_stem),
        template_file_path=storage_path_for(storage_prefix, category_slug, template_id),
        variables=variables,
        estimated_minutes=minutes,
        source_key=source_file.source_key,
    )
