"""
Custom element registry.

The registry owns a whole-cache of definitions loaded from a definition
source. Reads are served from the cache; any mutation writes through to
the source and drops the cache so the next read reloads it.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from blockcms.domain.custom_elements import (
    FIELD_EDIT_POLICY,
    IMMUTABLE,
    SYSTEM_LOCKED,
    CustomElementDefinition,
    check_definition,
    compute_default_data,
    generate_type,
    is_valid_type,
    localized,
    normalize_keys,
    validate_custom_data,
)
from blockcms.domain.invariants.exceptions import (
    DuplicateType,
    NotFound,
    SystemElementProtected,
    ValidationError,
)

logger = logging.getLogger(__name__)


class DefinitionSource(Protocol):
    def load_all(self) -> List[CustomElementDefinition]:
        ...

    def insert(self, definition: CustomElementDefinition) -> None:
        ...

    def save(self, definition: CustomElementDefinition) -> None:
        ...

    def remove(self, type_name: str) -> None:
        ...

    def set_orders(self, orders: Dict[str, int]) -> None:
        ...


class JsonDirectorySource:
    """
    Read-only source backed by a directory of `*.json` definition files.

    Files named `*_schema.json` are skipped. Invalid files are logged and
    skipped, never fatal.
    """

    def __init__(self, path: str, is_system: bool = False):
        self.path = path
        self.is_system = is_system

    def load_all(self) -> List[CustomElementDefinition]:
        if not os.path.isdir(self.path):
            return []

        definitions = []
        for filename in sorted(os.listdir(self.path)):
            if not filename.endswith(".json") or filename.endswith("_schema.json"):
                continue
            file_path = os.path.join(self.path, filename)
            try:
                with open(file_path, encoding="utf-8") as fh:
                    raw = json.load(fh)
            except (OSError, json.JSONDecodeError) as exc:
                logger.error("Failed to parse custom element file %s: %s", file_path, exc)
                continue

            if not isinstance(raw, dict) or "type" not in raw:
                continue
            if not is_valid_type(raw["type"]):
                logger.warning("Invalid custom element type %r in %s", raw["type"], file_path)
                continue

            raw = normalize_keys(raw)
            raw.setdefault("is_system", self.is_system)
            definitions.append(CustomElementDefinition.from_dict(raw))
        return definitions

    def _read_only(self, *args, **kwargs):
        raise NotImplementedError("JSON definition files are read-only")

    insert = save = remove = set_orders = _read_only


class InMemorySource:
    """Source keeping definitions in a dict. Used for tests and seeding."""

    def __init__(self, definitions: Optional[Iterable[CustomElementDefinition]] = None):
        self._items: Dict[str, CustomElementDefinition] = {}
        for definition in definitions or []:
            self._items[definition.type] = copy.deepcopy(definition)
        self.loads = 0

    def load_all(self) -> List[CustomElementDefinition]:
        self.loads += 1
        return [copy.deepcopy(d) for d in self._items.values()]

    def insert(self, definition: CustomElementDefinition) -> None:
        self._items[definition.type] = copy.deepcopy(definition)

    def save(self, definition: CustomElementDefinition) -> None:
        self._items[definition.type] = copy.deepcopy(definition)

    def remove(self, type_name: str) -> None:
        self._items.pop(type_name, None)

    def set_orders(self, orders: Dict[str, int]) -> None:
        for type_name, order in orders.items():
            if type_name in self._items:
                self._items[type_name].order = order


class CustomElementRegistry:
    def __init__(
        self,
        source: DefinitionSource,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.max_age = max_age
        self._clock = clock
        self._cache: Optional["OrderedDict[str, CustomElementDefinition]"] = None
        self._loaded_at: Optional[float] = None

    # -------------------------------------------------
    # Cache
    # -------------------------------------------------

    def _is_stale(self) -> bool:
        if self._cache is None:
            return True
        if self.max_age is None:
            return False
        return self._clock() - self._loaded_at >= self.max_age

    def _load(self) -> "OrderedDict[str, CustomElementDefinition]":
        definitions = sorted(self.source.load_all(), key=lambda d: (d.category, d.order, d.type))
        cache = OrderedDict((d.type, d) for d in definitions)
        self._cache = cache
        self._loaded_at = self._clock()
        logger.debug("Loaded %d custom element definition(s)", len(cache))
        return cache

    def invalidate(self) -> None:
        self._cache = None
        self._loaded_at = None

    def refresh(self) -> Dict[str, CustomElementDefinition]:
        self.invalidate()
        return self.all()

    def all(self) -> Dict[str, CustomElementDefinition]:
        if self._is_stale():
            self._load()
        return self._cache

    # -------------------------------------------------
    # Lookups
    # -------------------------------------------------

    def get_definition(self, type_name: str) -> Optional[CustomElementDefinition]:
        return self.all().get(type_name)

    def exists(self, type_name: str) -> bool:
        return type_name in self.all()

    def types(self) -> List[str]:
        return list(self.all().keys())

    def list_by_category(self, category: str) -> List[CustomElementDefinition]:
        return [d for d in self.all().values() if d.category == category]

    def grouped_by_category(self) -> Dict[str, List[CustomElementDefinition]]:
        grouped: Dict[str, List[CustomElementDefinition]] = OrderedDict()
        for definition in self.all().values():
            grouped.setdefault(definition.category, []).append(definition)
        return grouped

    def can_have_children(self, type_name: str) -> bool:
        definition = self.get_definition(type_name)
        return bool(definition and definition.can_have_children)

    def default_data(self, type_name: str) -> Dict[str, Any]:
        definition = self.get_definition(type_name)
        if definition is None:
            return {}
        return compute_default_data(definition)

    def validate_data(self, type_name: str, data: Dict[str, Any]) -> Dict[str, List[str]]:
        definition = self.get_definition(type_name)
        if definition is None:
            return {"_element": [f"Custom element type not found: {type_name}"]}
        return validate_custom_data(definition, data)

    # -------------------------------------------------
    # Mutations
    # -------------------------------------------------

    def _require(self, type_name: str) -> CustomElementDefinition:
        definition = self.get_definition(type_name)
        if definition is None:
            raise NotFound(f"Custom element '{type_name}' not found")
        return definition

    def create(self, data: Dict[str, Any]) -> CustomElementDefinition:
        data = normalize_keys(dict(data))
        if not data.get("type") and data.get("label"):
            data["type"] = generate_type(localized(data["label"]) or "")

        definition = CustomElementDefinition.from_dict(data)
        definition.is_system = bool(data.get("is_system", False))

        errors = check_definition(definition)
        if errors:
            raise ValidationError(errors)
        if self.exists(definition.type):
            raise DuplicateType(f"Custom element type '{definition.type}' already exists")

        if "order" not in data:
            existing = [d.order for d in self.all().values()]
            definition.order = (max(existing) + 1) if existing else 0

        self.source.insert(definition)
        self.invalidate()
        logger.info("Created custom element %s", definition.type)
        return self._require(definition.type)

    def update(self, type_name: str, changes: Dict[str, Any]) -> CustomElementDefinition:
        current = self._require(type_name)
        changes = normalize_keys(dict(changes))

        merged = current.to_dict()
        ignored = []
        for key, value in changes.items():
            if key not in merged:
                continue
            policy = FIELD_EDIT_POLICY.get(key)
            if policy == IMMUTABLE and value != merged[key]:
                ignored.append(key)
                continue
            if policy == SYSTEM_LOCKED and current.is_system and value != merged[key]:
                ignored.append(key)
                continue
            merged[key] = copy.deepcopy(value)

        if ignored:
            logger.info("Ignored locked attribute(s) %s on custom element %s", ignored, type_name)

        updated = CustomElementDefinition.from_dict(merged)
        errors = check_definition(updated)
        if errors:
            raise ValidationError(errors)

        self.source.save(updated)
        self.invalidate()
        return self._require(type_name)

    def delete(self, type_name: str) -> None:
        definition = self._require(type_name)
        if definition.is_system:
            raise SystemElementProtected(f"System element '{type_name}' cannot be deleted")
        self.source.remove(type_name)
        self.invalidate()
        logger.info("Deleted custom element %s", type_name)

    def reorder(self, types: List[str]) -> None:
        known = self.all()
        orders = {t: index for index, t in enumerate(types) if t in known}
        self.source.set_orders(orders)
        self.invalidate()

    def duplicate(self, type_name: str) -> CustomElementDefinition:
        original = self._require(type_name)

        new_type = f"{type_name}_copy"
        counter = 1
        while self.exists(new_type):
            new_type = f"{type_name}_copy{counter}"
            counter += 1

        label = copy.deepcopy(original.label)
        if isinstance(label, dict):
            label = {locale: f"{value} (Copy)" for locale, value in label.items()}
        elif isinstance(label, str):
            label = f"{label} (Copy)"

        data = original.to_dict()
        data.update({"type": new_type, "label": label, "is_system": False})
        data.pop("order", None)
        return self.create(data)
