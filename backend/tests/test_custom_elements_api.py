import json

from blockcms.models.custom_element import CustomElement

CTA = {
    "type": "custom_cta",
    "label": {"en": "Call to action", "de": "Handlungsaufruf"},
    "category": "content",
    "fields": [
        {"name": "headline", "label": "Headline", "inputType": "text", "required": True, "defaultValue": "Go"},
        {"name": "url", "label": "URL", "inputType": "url"},
    ],
}


def _create(client, headers, body=CTA):
    return client.post("/api/v1/custom-elements", json=body, headers=headers)


def test_create_list_and_get(client, auth_headers):
    headers = auth_headers()
    resp = _create(client, headers)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["computed_default_data"] == {"headline": "Go"}
    assert body["display_label"] == "Call to action"

    items = client.get("/api/v1/custom-elements?locale=de", headers=headers).get_json()["items"]
    assert [i["display_label"] for i in items] == ["Handlungsaufruf"]

    assert client.get("/api/v1/custom-elements?category=media", headers=headers).get_json()["items"] == []
    grouped = client.get("/api/v1/custom-elements/grouped", headers=headers).get_json()
    assert [d["type"] for d in grouped["content"]] == ["custom_cta"]

    assert client.get("/api/v1/custom-elements/custom_cta", headers=headers).status_code == 200
    assert client.get("/api/v1/custom-elements/custom_nope", headers=headers).status_code == 404


def test_definitions_are_persisted(app, client, auth_headers):
    _create(client, auth_headers())
    row = CustomElement.query.filter_by(type="custom_cta").one()
    assert row.fields[0]["name"] == "headline"


def test_duplicate_type_conflicts(client, auth_headers):
    headers = auth_headers()
    _create(client, headers)
    resp = _create(client, headers)
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "DuplicateType"


def test_management_needs_permission(client, auth_headers):
    assert _create(client, auth_headers("editor")).status_code == 403
    assert client.get("/api/v1/custom-elements", headers=auth_headers("viewer")).status_code == 200


def test_system_definition_cannot_be_deleted(client, auth_headers):
    headers = auth_headers()
    _create(client, headers, {**CTA, "is_system": True})

    resp = client.delete("/api/v1/custom-elements/custom_cta", headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "SystemElementProtected"
    assert client.get("/api/v1/custom-elements/custom_cta", headers=headers).status_code == 200

    resp = client.put("/api/v1/custom-elements/custom_cta", json={"category": "media"}, headers=headers)
    assert resp.get_json()["category"] == "content"


def test_reorder_duplicate_and_refresh(client, auth_headers):
    headers = auth_headers()
    _create(client, headers)
    _create(client, headers, {"type": "custom_quote", "label": "Quote"})

    resp = client.post("/api/v1/custom-elements/custom_cta/duplicate", headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()["type"] == "custom_cta_copy"

    resp = client.post(
        "/api/v1/custom-elements/reorder",
        json={"types": ["custom_quote", "custom_cta_copy", "custom_cta"]},
        headers=headers,
    )
    assert resp.status_code == 200
    assert [d["type"] for d in resp.get_json()["items"]] == ["custom_quote", "custom_cta_copy", "custom_cta"]

    assert client.post("/api/v1/custom-elements/reorder", json={"types": "x"}, headers=headers).status_code == 400
    resp = client.post("/api/v1/custom-elements/refresh", headers=headers)
    assert resp.get_json()["count"] == 3


def test_custom_element_in_content(client, auth_headers, collection, make_content):
    headers = auth_headers()
    _create(client, headers)
    content = make_content(headers, collection["id"])

    resp = client.post(
        f"/api/v1/contents/{content['id']}/elements",
        json={"element": {"type": "custom_cta"}},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.get_json()["element"]["data"] == {"headline": "Go"}

    resp = client.post(
        f"/api/v1/contents/{content['id']}/elements",
        json={"element": {"type": "custom_cta", "data": {"headline": "Go", "url": "nope"}}},
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.get_json()["errors"]["element.data.url"] == ["URL must be a valid URL."]


def test_orphaned_custom_elements_render_as_unknown(client, auth_headers, collection, make_content):
    headers = auth_headers()
    _create(client, headers)
    content = make_content(headers, collection["id"], elements=[
        {"type": "custom_cta", "data": {"headline": "Hi"}},
    ])

    assert client.delete("/api/v1/custom-elements/custom_cta", headers=headers).status_code == 200

    stored = client.get(f"/api/v1/contents/{content['id']}", headers=headers).get_json()
    assert stored["elements"][0]["type"] == "custom_cta"

    rendered = client.get(f"/api/v1/contents/{content['id']}/render", headers=headers).get_json()
    assert rendered["elements"][0]["type"] == "unknown"
    assert rendered["elements"][0]["original_type"] == "custom_cta"


def test_import_cli(app, tmp_path):
    (tmp_path / "hero.json").write_text(json.dumps({"type": "custom_hero", "label": "Hero"}))
    (tmp_path / "broken.json").write_text("{")

    runner = app.test_cli_runner()
    result = runner.invoke(args=["custom-elements", "import", str(tmp_path), "--system"])
    assert result.exit_code == 0, result.output
    assert "1 created" in result.output

    result = runner.invoke(args=["custom-elements", "import", str(tmp_path)])
    assert "1 skipped" in result.output

    row = CustomElement.query.filter_by(type="custom_hero").one()
    assert row.is_system is True

    result = runner.invoke(args=["custom-elements", "refresh"])
    assert "Loaded 1 custom element definition(s)." in result.output
