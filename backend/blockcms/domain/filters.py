"""
Filter expression engine.

A filter is a tree of groups (`and` / `or`) whose leaves are
field/operator/value conditions. `compile_group` checks the whole tree
against the available fields up front and returns a plain callable that
evaluates a content document (a dict, fields addressed by dotted path).
"""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from dateutil import parser as date_parser

from blockcms.domain.element_types import ContentStatus, MetaFieldType
from blockcms.domain.invariants.exceptions import InvalidFilterCondition

Predicate = Callable[[Dict[str, Any]], bool]

_MISSING = object()


class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IN = "in"
    NOT_IN = "not_in"
    GREATER_THAN = "gt"
    GREATER_THAN_OR_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_THAN_OR_EQUAL = "lte"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    REGEX = "regex"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    def label(self) -> str:
        return _LABELS[self]

    def requires_value(self) -> bool:
        return self not in (
            FilterOperator.EXISTS,
            FilterOperator.NOT_EXISTS,
            FilterOperator.IS_EMPTY,
            FilterOperator.IS_NOT_EMPTY,
        )

    def requires_array_value(self) -> bool:
        return self in (FilterOperator.IN, FilterOperator.NOT_IN)


_LABELS = {
    FilterOperator.EQUALS: "Equals",
    FilterOperator.NOT_EQUALS: "Not equals",
    FilterOperator.CONTAINS: "Contains",
    FilterOperator.NOT_CONTAINS: "Does not contain",
    FilterOperator.STARTS_WITH: "Starts with",
    FilterOperator.ENDS_WITH: "Ends with",
    FilterOperator.IN: "Is one of",
    FilterOperator.NOT_IN: "Is not one of",
    FilterOperator.GREATER_THAN: "Greater than",
    FilterOperator.GREATER_THAN_OR_EQUAL: "Greater than or equal",
    FilterOperator.LESS_THAN: "Less than",
    FilterOperator.LESS_THAN_OR_EQUAL: "Less than or equal",
    FilterOperator.EXISTS: "Exists",
    FilterOperator.NOT_EXISTS: "Does not exist",
    FilterOperator.REGEX: "Matches regex",
    FilterOperator.IS_EMPTY: "Is empty",
    FilterOperator.IS_NOT_EMPTY: "Is not empty",
}

_O = FilterOperator
_ORDERED = [_O.EQUALS, _O.NOT_EQUALS, _O.GREATER_THAN, _O.GREATER_THAN_OR_EQUAL,
            _O.LESS_THAN, _O.LESS_THAN_OR_EQUAL, _O.EXISTS, _O.NOT_EXISTS]
_STRINGY = [_O.EQUALS, _O.NOT_EQUALS, _O.CONTAINS, _O.NOT_CONTAINS, _O.STARTS_WITH,
            _O.ENDS_WITH, _O.IS_EMPTY, _O.IS_NOT_EMPTY, _O.EXISTS, _O.NOT_EXISTS]

OPERATORS_FOR_TYPE: Dict[str, List[FilterOperator]] = {
    "text": [_O.EQUALS, _O.NOT_EQUALS, _O.CONTAINS, _O.NOT_CONTAINS, _O.STARTS_WITH,
             _O.ENDS_WITH, _O.IN, _O.NOT_IN, _O.REGEX, _O.IS_EMPTY, _O.IS_NOT_EMPTY,
             _O.EXISTS, _O.NOT_EXISTS],
    "textarea": [_O.EQUALS, _O.NOT_EQUALS, _O.CONTAINS, _O.NOT_CONTAINS, _O.STARTS_WITH,
                 _O.ENDS_WITH, _O.REGEX, _O.IS_EMPTY, _O.IS_NOT_EMPTY, _O.EXISTS,
                 _O.NOT_EXISTS],
    "number": [_O.EQUALS, _O.NOT_EQUALS, _O.GREATER_THAN, _O.GREATER_THAN_OR_EQUAL,
               _O.LESS_THAN, _O.LESS_THAN_OR_EQUAL, _O.IN, _O.NOT_IN, _O.EXISTS,
               _O.NOT_EXISTS],
    "boolean": [_O.EQUALS, _O.NOT_EQUALS, _O.EXISTS, _O.NOT_EXISTS],
    "date": _ORDERED,
    "datetime": _ORDERED,
    "time": _ORDERED,
    "select": [_O.EQUALS, _O.NOT_EQUALS, _O.IN, _O.NOT_IN, _O.IS_EMPTY, _O.IS_NOT_EMPTY,
               _O.EXISTS, _O.NOT_EXISTS],
    "multi_select": [_O.CONTAINS, _O.NOT_CONTAINS, _O.EQUALS, _O.NOT_EQUALS, _O.IN,
                     _O.NOT_IN, _O.IS_EMPTY, _O.IS_NOT_EMPTY, _O.EXISTS, _O.NOT_EXISTS],
    "email": _STRINGY,
    "url": _STRINGY,
}

_TEMPORAL_TYPES = ("date", "datetime", "time")

BASE_FIELDS: List[Dict[str, Any]] = [
    {"field": "title", "label": "Title", "type": "text"},
    {"field": "slug", "label": "Slug", "type": "text"},
    {
        "field": "status",
        "label": "Status",
        "type": "select",
        "options": [{"value": s.value, "label": s.label()} for s in ContentStatus],
    },
    {"field": "current_version", "label": "Version", "type": "number"},
    {"field": "is_locked", "label": "Locked", "type": "boolean"},
    {"field": "created_at", "label": "Created At", "type": "datetime"},
    {"field": "updated_at", "label": "Updated At", "type": "datetime"},
]


def operators_for(field_type: str) -> List[FilterOperator]:
    """Unknown field types get the text operator set."""
    return list(OPERATORS_FOR_TYPE.get(field_type, OPERATORS_FOR_TYPE["text"]))


def _as_operator(operator: Any) -> Optional[FilterOperator]:
    try:
        return FilterOperator(operator)
    except ValueError:
        return None


def requires_value(operator: Any) -> bool:
    op = _as_operator(operator)
    return op.requires_value() if op else True


def requires_array_value(operator: Any) -> bool:
    op = _as_operator(operator)
    return bool(op and op.requires_array_value())


def _meta_filter_type(raw: Any) -> str:
    try:
        return MetaFieldType(raw).value
    except ValueError:
        return MetaFieldType.TEXT.value


def available_fields(schema, editions: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """
    Base content fields plus one `metadata.<name>` field per content meta field.

    `editions` is the list of `{value, label}` options for the editions
    field; it defaults to the schema's allow-list.
    """
    fields = [dict(f) for f in BASE_FIELDS]
    if editions is None:
        editions = [{"value": slug, "label": slug} for slug in (schema.allowed_editions or [])]
    fields.append({"field": "editions", "label": "Editions", "type": "multi_select", "options": editions})

    for meta_field in schema.get_content_meta_fields():
        name = meta_field.get("name")
        if not name:
            continue
        fields.append(
            {
                "field": f"metadata.{name}",
                "label": meta_field.get("label") or name,
                "type": _meta_filter_type(meta_field.get("type")),
                "options": meta_field.get("options"),
            }
        )
    return fields


# -------------------------------------------------
# Condition editing
# -------------------------------------------------

def _field_type(field_name: str, fields: Sequence[Dict[str, Any]]) -> str:
    for f in fields:
        if f.get("field") == field_name:
            return f.get("type") or "text"
    return "text"


def _empty_value_for(operator: FilterOperator):
    return [] if operator.requires_array_value() else ""


def change_field(condition: Dict[str, Any], field_name: str, fields: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Point a condition at another field.

    The operator is kept when the new field's type allows it and replaced
    by the type's first operator otherwise. The value is reset.
    """
    valid = operators_for(_field_type(field_name, fields))
    current = _as_operator(condition.get("operator"))
    operator = current if current in valid else valid[0]
    return {
        **condition,
        "type": "condition",
        "field": field_name,
        "operator": operator.value,
        "value": _empty_value_for(operator),
    }


def change_operator(condition: Dict[str, Any], operator: str) -> Dict[str, Any]:
    """Switch operator, reshaping the value only when its shape no longer fits."""
    op = FilterOperator(operator)
    value = condition.get("value")
    if op.requires_array_value():
        value = value if isinstance(value, list) else []
    elif isinstance(value, list):
        value = ""
    return {**condition, "operator": op.value, "value": value}


# -------------------------------------------------
# Normalisation
# -------------------------------------------------

def empty_group() -> Dict[str, Any]:
    return {"type": "group", "operator": "and", "children": []}


def normalize_conditions(conditions: Any) -> Dict[str, Any]:
    """The root of a stored filter is always a group."""
    if not isinstance(conditions, dict) or "type" not in conditions:
        return empty_group()
    if conditions["type"] != "group":
        return {"type": "group", "operator": "and", "children": [conditions]}
    return conditions


def normalize_sort(rules: Any) -> List[Dict[str, str]]:
    """Keep well-formed rules; each field keeps its first rule only."""
    normalized = []
    seen = set()
    for rule in rules if isinstance(rules, list) else []:
        if not isinstance(rule, dict) or not rule.get("field"):
            continue
        if rule["field"] in seen:
            continue
        seen.add(rule["field"])
        direction = rule.get("direction")
        normalized.append(
            {"field": rule["field"], "direction": direction if direction in ("asc", "desc") else "asc"}
        )
    return normalized


# -------------------------------------------------
# Evaluation
# -------------------------------------------------

def resolve_path(document: Dict[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _is_empty(value: Any) -> bool:
    return value is _MISSING or value is None or value == "" or value == []


def _to_temporal(value: Any):
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str) and value:
        try:
            return date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    return None


def _comparable(value: Any, field_type: str):
    if field_type in _TEMPORAL_TYPES:
        parsed = _to_temporal(value)
        if isinstance(parsed, datetime) and parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    if field_type == "number":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        return None
    return value


def _fold(value: Any) -> Optional[str]:
    return value.casefold() if isinstance(value, str) else None


def _equals(actual: Any, target: Any, field_type: str) -> bool:
    if isinstance(actual, list) and not isinstance(target, list):
        return target in actual
    if field_type in _TEMPORAL_TYPES:
        left, right = _comparable(actual, field_type), _comparable(target, field_type)
        return left is not None and left == right
    return actual == target


def _contains(actual: Any, target: Any) -> bool:
    if isinstance(actual, list):
        return target in actual
    folded, needle = _fold(actual), _fold(target)
    return folded is not None and needle is not None and needle in folded


def _in(actual: Any, targets: List[Any]) -> bool:
    if isinstance(actual, list):
        return any(item in targets for item in actual)
    return actual in targets


def _compare(actual: Any, target: Any, field_type: str, op: FilterOperator) -> bool:
    left, right = _comparable(actual, field_type), _comparable(target, field_type)
    if left is None or right is None:
        return False
    try:
        if op is FilterOperator.GREATER_THAN:
            return left > right
        if op is FilterOperator.GREATER_THAN_OR_EQUAL:
            return left >= right
        if op is FilterOperator.LESS_THAN:
            return left < right
        return left <= right
    except TypeError:
        return False


def _check_value(op: FilterOperator, value: Any, field_type: str, field_name: str):
    if not op.requires_value():
        return
    if op.requires_array_value():
        if not isinstance(value, list):
            raise InvalidFilterCondition(f"Operator '{op.value}' on '{field_name}' requires an array value")
        items = value
    else:
        if value is None or value == "":
            raise InvalidFilterCondition(f"Operator '{op.value}' on '{field_name}' requires a value")
        if isinstance(value, (list, dict)):
            raise InvalidFilterCondition(f"Operator '{op.value}' on '{field_name}' requires a single value")
        items = [value]

    for item in items:
        if field_type == "number" and (isinstance(item, bool) or not isinstance(item, (int, float))):
            raise InvalidFilterCondition(f"Field '{field_name}' expects a number")
        if field_type == "boolean" and not isinstance(item, bool):
            raise InvalidFilterCondition(f"Field '{field_name}' expects a boolean")
        if field_type in _TEMPORAL_TYPES and _to_temporal(item) is None:
            raise InvalidFilterCondition(f"Field '{field_name}' expects a date or time value")


def compile_condition(condition: Dict[str, Any], fields: Sequence[Dict[str, Any]]) -> Predicate:
    field_name = condition.get("field")
    known = {f.get("field"): f for f in fields}
    if not field_name or field_name not in known:
        raise InvalidFilterCondition(f"Unknown filter field '{field_name}'")

    field_type = known[field_name].get("type") or "text"
    op = _as_operator(condition.get("operator"))
    if op is None or op not in operators_for(field_type):
        raise InvalidFilterCondition(
            f"Operator '{condition.get('operator')}' is not allowed for field '{field_name}'"
        )

    value = condition.get("value")
    _check_value(op, value, field_type, field_name)

    if op is FilterOperator.REGEX:
        try:
            pattern = re.compile(value)
        except (re.error, TypeError) as exc:
            raise InvalidFilterCondition(f"Invalid regular expression for '{field_name}': {exc}") from exc

        def matches(document):
            actual = resolve_path(document, field_name)
            return isinstance(actual, str) and pattern.search(actual) is not None

        return matches

    def evaluate(document: Dict[str, Any]) -> bool:
        actual = resolve_path(document, field_name)

        if op is FilterOperator.EXISTS:
            return actual is not _MISSING and actual is not None
        if op is FilterOperator.NOT_EXISTS:
            return actual is _MISSING or actual is None
        if op is FilterOperator.IS_EMPTY:
            return _is_empty(actual)
        if op is FilterOperator.IS_NOT_EMPTY:
            return not _is_empty(actual)
        if op is FilterOperator.NOT_EQUALS:
            return not _equals(actual, value, field_type)
        if op is FilterOperator.NOT_CONTAINS:
            return not _contains(actual, value)
        if op is FilterOperator.NOT_IN:
            return not _in(actual, value)

        if actual is _MISSING:
            return False
        if op is FilterOperator.EQUALS:
            return _equals(actual, value, field_type)
        if op is FilterOperator.CONTAINS:
            return _contains(actual, value)
        if op is FilterOperator.STARTS_WITH:
            return _fold(actual) is not None and _fold(actual).startswith(_fold(str(value)))
        if op is FilterOperator.ENDS_WITH:
            return _fold(actual) is not None and _fold(actual).endswith(_fold(str(value)))
        if op is FilterOperator.IN:
            return _in(actual, value)
        return _compare(actual, value, field_type, op)

    return evaluate


def compile_group(group: Dict[str, Any], fields: Sequence[Dict[str, Any]]) -> Predicate:
    """
    Compile a condition group into a predicate.

    Raises InvalidFilterCondition for unknown fields, operators not allowed
    for a field's type, missing or wrongly shaped values, and bad regexes.
    An empty group matches everything.
    """
    if not isinstance(group, dict) or group.get("type", "group") != "group":
        raise InvalidFilterCondition("Filter root must be a condition group")

    operator = group.get("operator", "and")
    if operator not in ("and", "or"):
        raise InvalidFilterCondition(f"Unknown group operator '{operator}'")

    children = group.get("children") or []
    if not isinstance(children, list):
        raise InvalidFilterCondition("Group children must be a list")

    predicates: List[Predicate] = []
    for child in children:
        kind = child.get("type") if isinstance(child, dict) else None
        if kind == "group":
            predicates.append(compile_group(child, fields))
        elif kind == "condition":
            predicates.append(compile_condition(child, fields))
        else:
            raise InvalidFilterCondition(f"Unknown filter node type '{kind}'")

    if not predicates:
        return lambda document: True
    if operator == "or":
        return lambda document: any(p(document) for p in predicates)
    return lambda document: all(p(document) for p in predicates)


def _sort_key(value: Any):
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, str):
        return (1, value.casefold())
    return (2, str(value))


def apply_sort(documents: List[Dict[str, Any]], rules: Sequence[Dict[str, str]]) -> List[Dict[str, Any]]:
    """Stable multi-key sort; documents lacking a sort field go last."""
    result = list(documents)
    for rule in reversed(normalize_sort(list(rules))):
        field_name = rule["field"]
        present = [d for d in result if not _is_empty_for_sort(resolve_path(d, field_name))]
        missing = [d for d in result if _is_empty_for_sort(resolve_path(d, field_name))]
        present.sort(
            key=lambda d: _sort_key(resolve_path(d, field_name)),
            reverse=rule["direction"] == "desc",
        )
        result = present + missing
    return result


def _is_empty_for_sort(value: Any) -> bool:
    return value is _MISSING or value is None
