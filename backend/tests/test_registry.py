import json

import pytest

from blockcms.domain.custom_elements import (
    CustomElementDefinition,
    compute_default_data,
    generate_type,
    validate_custom_data,
)
from blockcms.domain.invariants.exceptions import (
    DuplicateType,
    NotFound,
    SystemElementProtected,
    ValidationError,
)
from blockcms.domain.registry import CustomElementRegistry, InMemorySource, JsonDirectorySource


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def source():
    return InMemorySource([
        CustomElementDefinition(type="custom_hero", label={"en": "Hero", "de": "Held"}, is_system=True,
                                category="layout"),
        CustomElementDefinition(type="custom_cta", label="CTA", category="content", order=1),
    ])


@pytest.fixture
def registry(source):
    return CustomElementRegistry(source)


def test_generate_type_from_label():
    assert generate_type("Call To Action!") == "custom_call_to_action"
    assert generate_type("3D Viewer") == "custom_d_viewer"
    assert generate_type("") == "custom_element"


def test_reads_are_served_from_cache(registry, source):
    registry.get_definition("custom_cta")
    registry.exists("custom_hero")
    registry.types()
    assert source.loads == 1


def test_max_age_expires_cache(source):
    clock = FakeClock()
    registry = CustomElementRegistry(source, max_age=60, clock=clock)

    registry.all()
    clock.now = 59
    registry.all()
    assert source.loads == 1

    clock.now = 60
    registry.all()
    assert source.loads == 2


def test_mutation_invalidates_cache(registry, source):
    registry.all()
    registry.create({"type": "custom_quote", "label": "Quote"})
    assert registry.exists("custom_quote")
    assert source.loads == 2


def test_create_derives_type_from_label_and_appends_order(registry):
    definition = registry.create({"label": "Pricing Table"})
    assert definition.type == "custom_pricing_table"
    assert definition.order == 2
    assert definition.is_system is False


def test_create_rejects_duplicate_type(registry):
    with pytest.raises(DuplicateType):
        registry.create({"type": "custom_cta"})


def test_create_rejects_bad_type_and_fields(registry):
    with pytest.raises(ValidationError) as exc:
        registry.create({
            "type": "cta",
            "fields": [
                {"name": "a", "inputType": "text"},
                {"name": "a", "inputType": "warp"},
            ],
        })
    assert "type" in exc.value.errors
    assert "fields.1.name" in exc.value.errors
    assert "fields.1.inputType" in exc.value.errors


def test_deleting_system_definition_fails_and_it_stays(registry):
    with pytest.raises(SystemElementProtected):
        registry.delete("custom_hero")
    assert registry.get_definition("custom_hero") is not None


def test_delete_unknown_type(registry):
    with pytest.raises(NotFound):
        registry.delete("custom_nope")


def test_update_drops_locked_attributes(registry):
    updated = registry.update("custom_hero", {"category": "media", "icon": "star", "type": "custom_x"})
    assert updated.type == "custom_hero"
    assert updated.category == "layout"
    assert updated.icon == "star"

    cta = registry.update("custom_cta", {"category": "media", "is_system": True})
    assert cta.category == "media"
    assert cta.is_system is False


def test_reorder_ignores_unknown_types(registry):
    registry.reorder(["custom_cta", "custom_missing", "custom_hero"])
    assert registry.get_definition("custom_cta").order == 0
    assert registry.get_definition("custom_hero").order == 2


def test_duplicate_creates_non_system_copy(registry):
    first = registry.duplicate("custom_hero")
    second = registry.duplicate("custom_hero")

    assert first.type == "custom_hero_copy"
    assert second.type == "custom_hero_copy1"
    assert first.is_system is False
    assert first.label == {"en": "Hero (Copy)", "de": "Held (Copy)"}


def test_grouped_by_category(registry):
    grouped = registry.grouped_by_category()
    assert [d.type for d in grouped["layout"]] == ["custom_hero"]
    assert [d.type for d in registry.list_by_category("content")] == ["custom_cta"]


def test_default_data_prefers_explicit_defaults():
    definition = CustomElementDefinition(
        type="custom_box",
        fields=[
            {"name": "title", "inputType": "text", "defaultValue": "From field"},
            {"name": "size", "inputType": "number", "defaultValue": 3},
        ],
        default_data={"title": "Explicit"},
    )
    assert compute_default_data(definition) == {"title": "Explicit", "size": 3}


def test_field_rules():
    definition = CustomElementDefinition(
        type="custom_form",
        fields=[
            {"name": "email", "label": "Email", "inputType": "email", "required": True},
            {"name": "count", "label": "Count", "inputType": "number", "validation": {"min": 1, "max": 5}},
            {"name": "kind", "label": "Kind", "inputType": "select", "options": [{"value": "a"}, "b"]},
            {
                "name": "link",
                "label": "Link",
                "inputType": "url",
                "required": True,
                "conditional": {"field": "kind", "operator": "equals", "value": "a"},
            },
        ],
    )

    errors = validate_custom_data(definition, {"email": "nope", "count": 9, "kind": "c"})
    assert errors["email"] == ["Email must be a valid email address."]
    assert errors["count"] == ["Count must be at most 5."]
    assert errors["kind"] == ["Kind must be one of the defined options."]
    assert "link" not in errors

    errors = validate_custom_data(definition, {"email": "a@b.io", "count": True, "kind": "a"})
    assert errors["count"] == ["Count must be of type number."]
    assert errors["link"] == ["Link is required."]


def test_json_directory_source_skips_invalid_files(tmp_path):
    (tmp_path / "cta.json").write_text(json.dumps({"type": "custom_cta", "canHaveChildren": True}))
    (tmp_path / "broken.json").write_text("{nope")
    (tmp_path / "bad_type.json").write_text(json.dumps({"type": "cta"}))
    (tmp_path / "element_schema.json").write_text(json.dumps({"type": "custom_schema"}))
    (tmp_path / "notes.txt").write_text("ignored")

    definitions = JsonDirectorySource(str(tmp_path), is_system=True).load_all()

    assert [d.type for d in definitions] == ["custom_cta"]
    assert definitions[0].can_have_children is True
    assert definitions[0].is_system is True


def test_json_directory_source_is_read_only(tmp_path):
    registry = CustomElementRegistry(JsonDirectorySource(str(tmp_path)))
    with pytest.raises(NotImplementedError):
        registry.create({"type": "custom_new"})
