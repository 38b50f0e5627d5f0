"""
User-defined element types.

A definition describes the `data` shape of one `custom_*` element type:
its fields, their input types and validation rules, and default data for
newly inserted elements.
"""
from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from blockcms.domain.element_types import (
    ARRAY,
    BOOLEAN,
    CUSTOM_PREFIX,
    NUMBER,
    STRING,
    matches_semantic_type,
)

TYPE_PATTERN = re.compile(r"^custom_[a-z][a-z0-9_]*$")
FIELD_NAME_PATTERN = re.compile(r"^[a-z][a-zA-Z0-9_]*$")
URL_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://[^\s/?#]+[^\s]*$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

CATEGORIES = ("content", "data", "layout", "interactive", "media")

# input type -> semantic type of the stored value
INPUT_TYPES: Dict[str, Optional[str]] = {
    "text": STRING,
    "textarea": STRING,
    "number": NUMBER,
    "email": STRING,
    "url": STRING,
    "tel": STRING,
    "password": STRING,
    "color": STRING,
    "date": STRING,
    "datetime": STRING,
    "time": STRING,
    "checkbox": BOOLEAN,
    "switch": BOOLEAN,
    "toggle": BOOLEAN,
    "radio": STRING,
    "select": STRING,
    "combobox": STRING,
    "multi_select": ARRAY,
    "tags": ARRAY,
    "slider": NUMBER,
    "range": NUMBER,
    "editor": STRING,
    "code": STRING,
    "markdown": STRING,
    "json": ARRAY,
    "media": None,
    "reference": None,
    "hidden": None,
}

ALWAYS_EDITABLE = "always_editable"
SYSTEM_LOCKED = "system_locked"
IMMUTABLE = "immutable"

# Update merge policy per definition attribute. Attributes not listed are
# always editable. SYSTEM_LOCKED changes are dropped for system definitions.
FIELD_EDIT_POLICY: Dict[str, str] = {
    "type": IMMUTABLE,
    "is_system": IMMUTABLE,
    "category": SYSTEM_LOCKED,
}

# camelCase keys found in legacy definition files
_LEGACY_KEYS = {
    "canHaveChildren": "can_have_children",
    "defaultData": "default_data",
    "previewTemplate": "preview_template",
    "cssClass": "css_class",
    "isSystem": "is_system",
}


def is_valid_type(type_name: Any) -> bool:
    return isinstance(type_name, str) and bool(TYPE_PATTERN.match(type_name))


def generate_type(label: str) -> str:
    """
    Derive a candidate type slug from a human label.

    "Call To Action!" -> "custom_call_to_action"
    "3D Viewer"       -> "custom_d_viewer"
    """
    slug = re.sub(r"[^a-z0-9]+", "_", (label or "").lower()).strip("_")
    slug = re.sub(r"^[^a-z]+", "", slug)
    return CUSTOM_PREFIX + (slug or "element")


def normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for key, value in data.items():
        normalized[_LEGACY_KEYS.get(key, key)] = value
    return normalized


@dataclass
class CustomElementDefinition:
    type: str
    label: Any = None
    description: Any = None
    icon: Optional[str] = None
    category: str = "content"
    can_have_children: bool = False
    fields: List[Dict[str, Any]] = field(default_factory=list)
    default_data: Dict[str, Any] = field(default_factory=dict)
    preview_template: Optional[str] = None
    css_class: Optional[str] = None
    is_system: bool = False
    order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomElementDefinition":
        data = normalize_keys(data)
        return cls(
            type=data.get("type"),
            label=data.get("label"),
            description=data.get("description"),
            icon=data.get("icon"),
            category=data.get("category") or "content",
            can_have_children=bool(data.get("can_have_children", False)),
            fields=copy.deepcopy(data.get("fields") or []),
            default_data=copy.deepcopy(data.get("default_data") or {}),
            preview_template=data.get("preview_template"),
            css_class=data.get("css_class"),
            is_system=bool(data.get("is_system", False)),
            order=int(data.get("order") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "label": copy.deepcopy(self.label),
            "description": copy.deepcopy(self.description),
            "icon": self.icon,
            "category": self.category,
            "can_have_children": self.can_have_children,
            "fields": copy.deepcopy(self.fields),
            "default_data": copy.deepcopy(self.default_data),
            "preview_template": self.preview_template,
            "css_class": self.css_class,
            "is_system": self.is_system,
            "order": self.order,
        }

    def display_label(self, locale: str = "en") -> str:
        return localized(self.label, locale) or self.type


def localized(value: Any, locale: str = "en") -> Optional[str]:
    if isinstance(value, dict):
        return value.get(locale) or value.get("en") or next(iter(value.values()), None)
    return value


def compute_default_data(definition: CustomElementDefinition) -> Dict[str, Any]:
    """Explicit default_data wins; field defaultValue only fills the gaps."""
    defaults = copy.deepcopy(definition.default_data or {})
    for field_def in definition.fields:
        name = field_def.get("name")
        if name and name not in defaults and field_def.get("defaultValue") is not None:
            defaults[name] = copy.deepcopy(field_def["defaultValue"])
    return defaults


def check_definition(definition: CustomElementDefinition) -> Dict[str, List[str]]:
    """Structural checks applied when a definition is created or updated."""
    errors: Dict[str, List[str]] = {}

    if not is_valid_type(definition.type):
        errors["type"] = [
            "Type must start with 'custom_' followed by a lowercase letter "
            "and contain only lowercase letters, digits and underscores."
        ]
    if definition.category not in CATEGORIES:
        errors["category"] = [f"Category must be one of: {', '.join(CATEGORIES)}."]

    seen = set()
    for index, field_def in enumerate(definition.fields):
        path = f"fields.{index}"
        if not isinstance(field_def, dict):
            errors[path] = ["Field definition must be an object."]
            continue
        name = field_def.get("name")
        if not isinstance(name, str) or not FIELD_NAME_PATTERN.match(name):
            errors.setdefault(f"{path}.name", []).append("Field name is invalid.")
        elif name in seen:
            errors.setdefault(f"{path}.name", []).append(f"Duplicate field name '{name}'.")
        else:
            seen.add(name)
        if field_def.get("inputType") not in INPUT_TYPES:
            errors.setdefault(f"{path}.inputType", []).append(
                f"Unknown input type '{field_def.get('inputType')}'."
            )

    return errors


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, dict)) and len(value) == 0:
        return True
    return False


def _condition_holds(condition: Dict[str, Any], data: Dict[str, Any]) -> bool:
    name = condition.get("field")
    if not name or name not in data:
        return True

    value = data[name]
    target = condition.get("value")
    operator = condition.get("operator", "equals")

    if operator == "equals":
        return value == target
    if operator == "notEquals":
        return value != target
    if operator == "contains":
        return isinstance(value, str) and str(target) in value
    if operator == "notContains":
        return isinstance(value, str) and str(target) not in value
    if operator == "isEmpty":
        return _is_empty(value)
    if operator == "isNotEmpty":
        return not _is_empty(value)
    if operator == "greaterThan":
        return matches_semantic_type(value, NUMBER) and target is not None and value > target
    if operator == "lessThan":
        return matches_semantic_type(value, NUMBER) and target is not None and value < target
    return True


def _validate_field(field_def: Dict[str, Any], value: Any, data: Dict[str, Any]) -> List[str]:
    label = localized(field_def.get("label")) or field_def["name"]

    conditional = field_def.get("conditional")
    if isinstance(conditional, dict) and not _condition_holds(conditional, data):
        return []

    if _is_empty(value):
        if field_def.get("required"):
            return [f"{label} is required."]
        return []

    expected = INPUT_TYPES.get(field_def.get("inputType"))
    if expected and not matches_semantic_type(value, expected):
        return [f"{label} must be of type {expected}."]

    errors: List[str] = []
    rules = field_def.get("validation") or {}

    if isinstance(value, str):
        if "minLength" in rules and len(value) < rules["minLength"]:
            errors.append(f"{label} must be at least {rules['minLength']} characters.")
        if "maxLength" in rules and len(value) > rules["maxLength"]:
            errors.append(f"{label} must be at most {rules['maxLength']} characters.")
        if rules.get("pattern"):
            try:
                matched = re.search(rules["pattern"], value)
            except re.error:
                matched = None
            if not matched:
                errors.append(rules.get("patternMessage") or f"{label} has an invalid format.")

    if matches_semantic_type(value, NUMBER):
        if "min" in rules and value < rules["min"]:
            errors.append(f"{label} must be at least {rules['min']}.")
        if "max" in rules and value > rules["max"]:
            errors.append(f"{label} must be at most {rules['max']}.")

    if isinstance(value, list):
        if "minItems" in rules and len(value) < rules["minItems"]:
            errors.append(f"{label} must have at least {rules['minItems']} items.")
        if "maxItems" in rules and len(value) > rules["maxItems"]:
            errors.append(f"{label} must have at most {rules['maxItems']} items.")

    input_type = field_def.get("inputType")
    if input_type == "url" and not URL_PATTERN.match(value):
        errors.append(f"{label} must be a valid URL.")
    if input_type == "email" and not EMAIL_PATTERN.match(value):
        errors.append(f"{label} must be a valid email address.")

    options = field_def.get("options")
    if input_type in ("select", "radio") and options:
        allowed = {_option_value(o) for o in options}
        if value not in allowed:
            errors.append(f"{label} must be one of the defined options.")

    return errors


def _option_value(option: Any) -> Any:
    if isinstance(option, dict):
        return option.get("value")
    return option


def validate_custom_data(
    definition: CustomElementDefinition,
    data: Dict[str, Any],
) -> Dict[str, List[str]]:
    """Validate an element's data against a definition's field list."""
    errors: Dict[str, List[str]] = {}
    for field_def in definition.fields:
        name = field_def.get("name")
        if not name:
            continue
        field_errors = _validate_field(field_def, data.get(name), data)
        if field_errors:
            errors[name] = field_errors
    return errors
