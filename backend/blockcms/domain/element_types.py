from enum import Enum
from typing import Dict

# Semantic value types used by strict data validation.
STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
ARRAY = "array"
OBJECT = "object"

CUSTOM_PREFIX = "custom_"


class ElementType(str, Enum):
    TEXT = "text"
    MEDIA = "media"
    SVG = "svg"
    KATEX = "katex"
    HTML = "html"
    JSON = "json"
    XML = "xml"
    WRAPPER = "wrapper"
    REFERENCE = "reference"

    @classmethod
    def from_type(cls, type_name: str):
        try:
            return cls(type_name)
        except ValueError:
            return None

    def required_fields(self) -> Dict[str, str]:
        return _REQUIRED_FIELDS[self]

    def optional_fields(self) -> Dict[str, str]:
        return _OPTIONAL_FIELDS[self]

    def can_have_children(self) -> bool:
        return self is ElementType.WRAPPER

    def label(self) -> str:
        return _LABELS[self]


# Wrapper children live on the node itself, not inside `data`.
_REQUIRED_FIELDS: Dict[ElementType, Dict[str, str]] = {
    ElementType.TEXT: {"content": STRING},
    ElementType.MEDIA: {"file_id": STRING, "media_type": STRING},
    ElementType.SVG: {"content": STRING},
    ElementType.KATEX: {"formula": STRING},
    ElementType.HTML: {"content": STRING},
    ElementType.JSON: {"data": ARRAY},
    ElementType.XML: {"content": STRING},
    ElementType.WRAPPER: {},
    ElementType.REFERENCE: {"reference_type": STRING, "collection_id": STRING},
}

_OPTIONAL_FIELDS: Dict[ElementType, Dict[str, str]] = {
    ElementType.TEXT: {"format": STRING},
    ElementType.MEDIA: {"alt": STRING, "caption": STRING},
    ElementType.SVG: {"viewBox": STRING, "title": STRING},
    ElementType.KATEX: {"display_mode": BOOLEAN},
    ElementType.HTML: {},
    ElementType.JSON: {},
    ElementType.XML: {"schema": STRING},
    ElementType.WRAPPER: {
        "purpose": STRING,
        "layout": STRING,
        "style": OBJECT,
        "css_class": STRING,
    },
    ElementType.REFERENCE: {
        "content_id": STRING,
        "element_id": STRING,
        "display_title": STRING,
    },
}

_LABELS: Dict[ElementType, str] = {
    ElementType.TEXT: "Text",
    ElementType.MEDIA: "Media (Image, Video, Audio)",
    ElementType.SVG: "SVG Illustration",
    ElementType.KATEX: "KaTeX Formula",
    ElementType.HTML: "Custom HTML",
    ElementType.JSON: "Custom JSON Data",
    ElementType.XML: "Custom XML Data",
    ElementType.WRAPPER: "Wrapper Container",
    ElementType.REFERENCE: "Reference",
}

BUILT_IN_TYPES = tuple(t.value for t in ElementType)

REFERENCE_TYPES = ("collection", "content", "element")


def is_custom_type(type_name: str) -> bool:
    return isinstance(type_name, str) and type_name.startswith(CUSTOM_PREFIX)


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

    def label(self) -> str:
        return self.value.capitalize()


class MetaFieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    URL = "url"
    EMAIL = "email"
    COLOR = "color"
    JSON = "json"
    MEDIA = "media"


def matches_semantic_type(value, expected: str) -> bool:
    """
    Strict, coercion-free type check.

    bool is excluded from NUMBER even though it subclasses int.
    ARRAY accepts both lists and maps (a JSON payload may be either).
    """
    if expected == STRING:
        return isinstance(value, str)
    if expected == NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == BOOLEAN:
        return isinstance(value, bool)
    if expected == ARRAY:
        return isinstance(value, (list, dict))
    if expected == OBJECT:
        return isinstance(value, dict)
    return True
