"""
Collection schema resolution.

Schema input is normalized, never rejected: unknown keys are dropped and
missing or wrong-shaped keys fall back to defaults. Strict checks on
content live in the element tree validator, which consumes a resolved
CollectionSchema.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from blockcms.domain.element_types import BUILT_IN_TYPES

DEFAULT_TEXT_FORMATS = ["plain", "markdown", "html"]
DEFAULT_MEDIA_TYPES = ["image", "video", "audio", "document"]

DEFAULT_ELEMENT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "text": {"enabled": True, "formats": DEFAULT_TEXT_FORMATS},
    "media": {"enabled": True, "types": DEFAULT_MEDIA_TYPES, "max_size": None},
    "html": {"enabled": True},
    "json": {"enabled": True},
    "xml": {"enabled": True},
    "svg": {"enabled": True},
    "katex": {"enabled": True},
    "wrapper": {"enabled": True},
    "reference": {"enabled": True},
}

DEFAULT_LIST_VIEW_COLUMNS: List[Dict[str, Any]] = [
    {"id": "title", "label": "Title", "type": "base", "visible": True, "toggleable": False, "sortable": True},
    {"id": "status", "label": "Status", "type": "base", "visible": True, "toggleable": True, "sortable": True},
    {"id": "is_locked", "label": "Lock", "type": "base", "visible": False, "toggleable": True, "sortable": True},
    {"id": "current_version", "label": "Version", "type": "base", "visible": True, "toggleable": True, "sortable": True},
    {"id": "updated_at", "label": "Updated", "type": "base", "visible": True, "toggleable": True, "sortable": True},
    {"id": "slug", "label": "Slug", "type": "base", "visible": False, "toggleable": True, "sortable": True},
    {"id": "created_at", "label": "Created", "type": "base", "visible": False, "toggleable": True, "sortable": True},
    {"id": "editions", "label": "Editions", "type": "base", "visible": False, "toggleable": True, "sortable": False},
]

DEFAULT_LIST_VIEW_SETTINGS: Dict[str, Any] = {
    "columns": DEFAULT_LIST_VIEW_COLUMNS,
    "default_per_page": 20,
    "per_page_options": [10, 20, 50, 100],
    "default_sort_column": "updated_at",
    "default_sort_direction": "desc",
}


def _list_of_dicts(value) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _list_of_strings(value) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


@dataclass
class CollectionSchema:
    allowed_elements: List[str] = field(default_factory=lambda: list(BUILT_IN_TYPES))
    element_configs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    content_meta_fields: List[Dict[str, Any]] = field(default_factory=list)
    element_meta_fields: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    collection_meta_fields: List[Dict[str, Any]] = field(default_factory=list)
    # None means every edition is allowed; [] means none is.
    allowed_editions: Optional[List[str]] = None
    meta_only_content: bool = False
    list_view_settings: Dict[str, Any] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_LIST_VIEW_SETTINGS)
    )

    def is_element_allowed(self, type_name: str) -> bool:
        return type_name in self.allowed_elements

    def is_edition_allowed(self, slug: str) -> bool:
        if self.allowed_editions is None:
            return True
        return slug in self.allowed_editions

    def get_element_config(self, type_name: str) -> Dict[str, Any]:
        merged = copy.deepcopy(DEFAULT_ELEMENT_CONFIGS.get(type_name, {}))
        merged.update(copy.deepcopy(self.element_configs.get(type_name, {})))
        return merged

    def is_element_enabled(self, type_name: str) -> bool:
        return self.get_element_config(type_name).get("enabled", True) is not False

    def get_text_formats(self) -> List[str]:
        return self.get_element_config("text").get("formats") or list(DEFAULT_TEXT_FORMATS)

    def get_media_types(self) -> List[str]:
        return self.get_element_config("media").get("types") or list(DEFAULT_MEDIA_TYPES)

    def get_content_meta_fields(self) -> List[Dict[str, Any]]:
        return self.content_meta_fields

    def get_element_meta_fields(self, type_name: str) -> List[Dict[str, Any]]:
        return self.element_meta_fields.get(type_name, [])

    def get_collection_meta_fields(self) -> List[Dict[str, Any]]:
        return self.collection_meta_fields

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed_elements": list(self.allowed_elements),
            "element_configs": copy.deepcopy(self.element_configs),
            "content_meta_fields": copy.deepcopy(self.content_meta_fields),
            "element_meta_fields": copy.deepcopy(self.element_meta_fields),
            "collection_meta_fields": copy.deepcopy(self.collection_meta_fields),
            "allowed_editions": (
                list(self.allowed_editions) if self.allowed_editions is not None else None
            ),
            "meta_only_content": self.meta_only_content,
            "list_view_settings": copy.deepcopy(self.list_view_settings),
        }

    def to_frontend(self) -> Dict[str, Any]:
        """Schema with defaults materialized for every allowed element type."""
        data = self.to_dict()
        data["element_configs"] = {
            type_name: self.get_element_config(type_name)
            for type_name in set(self.allowed_elements) | set(self.element_configs)
        }
        return data


def resolve(raw: Optional[Dict[str, Any]]) -> CollectionSchema:
    """
    Build a CollectionSchema from stored or submitted configuration.

    Never raises for structurally incomplete input.
    """
    if not isinstance(raw, dict):
        raw = {}

    allowed = _list_of_strings(raw.get("allowed_elements"))
    if allowed is None:
        allowed = list(BUILT_IN_TYPES)

    element_configs: Dict[str, Dict[str, Any]] = {}
    raw_configs = raw.get("element_configs")
    if isinstance(raw_configs, dict):
        for type_name, config in raw_configs.items():
            if isinstance(type_name, str) and isinstance(config, dict):
                element_configs[type_name] = dict(config)

    element_meta_fields: Dict[str, List[Dict[str, Any]]] = {}
    raw_element_meta = raw.get("element_meta_fields")
    if isinstance(raw_element_meta, dict):
        for type_name, fields in raw_element_meta.items():
            if isinstance(type_name, str):
                element_meta_fields[type_name] = _list_of_dicts(fields)

    allowed_editions = raw.get("allowed_editions")
    allowed_editions = _list_of_strings(allowed_editions) if allowed_editions is not None else None

    list_view_settings = copy.deepcopy(DEFAULT_LIST_VIEW_SETTINGS)
    raw_list_view = raw.get("list_view_settings")
    if isinstance(raw_list_view, dict):
        for key in DEFAULT_LIST_VIEW_SETTINGS:
            if key in raw_list_view and raw_list_view[key] is not None:
                list_view_settings[key] = copy.deepcopy(raw_list_view[key])

    return CollectionSchema(
        allowed_elements=allowed,
        element_configs=element_configs,
        content_meta_fields=_list_of_dicts(raw.get("content_meta_fields")),
        element_meta_fields=element_meta_fields,
        collection_meta_fields=_list_of_dicts(raw.get("collection_meta_fields")),
        allowed_editions=allowed_editions,
        meta_only_content=raw.get("meta_only_content") is True,
        list_view_settings=list_view_settings,
    )
