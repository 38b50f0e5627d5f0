from blockcms.domain.element_types import BUILT_IN_TYPES
from blockcms.domain.schema import resolve


def test_resolve_fills_defaults_for_empty_input():
    schema = resolve(None)
    assert schema.allowed_elements == list(BUILT_IN_TYPES)
    assert schema.allowed_editions is None
    assert schema.meta_only_content is False
    assert schema.list_view_settings["default_per_page"] == 20


def test_text_config_has_formats():
    config = resolve({}).get_element_config("text")
    assert config["formats"] == ["plain", "markdown", "html"]
    assert config["enabled"] is True


def test_element_config_overrides_merge_over_defaults():
    schema = resolve({"element_configs": {"text": {"formats": ["plain"]}}})
    assert schema.get_text_formats() == ["plain"]
    assert schema.get_element_config("text")["enabled"] is True


def test_edition_allow_list_is_tri_state():
    assert resolve({}).is_edition_allowed("de") is True
    assert resolve({"allowed_editions": []}).is_edition_allowed("de") is False
    only_en = resolve({"allowed_editions": ["en"]})
    assert only_en.is_edition_allowed("en") is True
    assert only_en.is_edition_allowed("de") is False


def test_malformed_keys_are_normalized_not_rejected():
    schema = resolve({
        "allowed_elements": "text",
        "element_configs": ["nope"],
        "content_meta_fields": [{"name": "a"}, "junk"],
        "unknown_key": 1,
    })
    assert schema.allowed_elements == list(BUILT_IN_TYPES)
    assert schema.element_configs == {}
    assert schema.content_meta_fields == [{"name": "a"}]
    assert "unknown_key" not in schema.to_dict()


def test_to_dict_round_trips_through_resolve():
    raw = {"allowed_elements": ["text"], "allowed_editions": ["en"], "meta_only_content": True}
    schema = resolve(raw)
    assert resolve(schema.to_dict()) == schema
