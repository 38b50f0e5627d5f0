import importlib

import pytest

from blockcms.extensions import db
from blockcms.models.content import Content
from blockcms.models.content_version import ContentVersion


def _versions(client, headers, content_id):
    resp = client.get(f"/api/v1/contents/{content_id}/versions", headers=headers)
    assert resp.status_code == 200
    return resp.get_json()["items"]


def _update(client, headers, content_id, **body):
    return client.put(f"/api/v1/contents/{content_id}", json=body, headers=headers)


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_requires_token(client, collection):
    resp = client.get(f"/api/v1/collections/{collection['id']}/contents")
    assert resp.status_code == 401


def test_create_starts_at_version_one(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])

    assert content["status"] == "draft"
    assert content["current_version"] == 1
    element = content["elements"][0]
    assert element["_id"] == element["id"]
    assert element["order"] == 0

    versions = _versions(client, headers, content["id"])
    assert [v["version_number"] for v in versions] == [1]
    assert versions[0]["change_note"] == "Initial version"
    assert versions[0]["diff_summary"] == {"added": 1, "removed": 0, "modified": 0}


def test_create_rejects_invalid_tree(client, auth_headers, collection, make_content):
    resp = client.post(
        f"/api/v1/collections/{collection['id']}/contents",
        json={"title": "Bad", "slug": "bad", "elements": [{"type": "svg", "data": {"content": "<svg/>"}}]},
        headers=auth_headers(),
    )
    assert resp.status_code == 422
    body = resp.get_json()
    assert body["error"] == "ValidationError"
    assert "elements.0.type" in body["errors"]


def test_duplicate_slug_conflicts(client, auth_headers, collection, make_content):
    headers = auth_headers()
    make_content(headers, collection["id"])
    resp = client.post(
        f"/api/v1/collections/{collection['id']}/contents",
        json={"title": "Again", "slug": "hello"},
        headers=headers,
    )
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "Conflict"


def test_each_save_appends_the_next_version(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])

    for number, title in ((2, "Second"), (3, "Third")):
        resp = _update(client, headers, content["id"], title=title)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["content"]["current_version"] == number
        assert body["version"]["version_number"] == number
        assert body["version"]["snapshot"]["title"] == title

    assert [v["version_number"] for v in _versions(client, headers, content["id"])] == [3, 2, 1]


def test_update_without_fields_is_rejected(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])
    resp = _update(client, headers, content["id"], change_note="nothing")
    assert resp.status_code == 422


def test_stale_expected_version_conflicts(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])
    _update(client, headers, content["id"], title="Second")

    resp = _update(client, headers, content["id"], title="Stale", expected_version=1)
    assert resp.status_code == 409

    resp = client.put(
        f"/api/v1/contents/{content['id']}",
        json={"title": "Fresh"},
        headers={**headers, "If-Match": '"2"'},
    )
    assert resp.status_code == 200
    assert resp.get_json()["content"]["current_version"] == 3


def test_restore_appends_a_new_version(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])
    cid = content["id"]

    _update(client, headers, cid, title="Second", elements=[
        {"type": "text", "data": {"content": "Two"}},
    ])
    _update(client, headers, cid, title="Third", slug="third")

    original = client.get(f"/api/v1/contents/{cid}/versions/1", headers=headers).get_json()

    resp = client.post(f"/api/v1/contents/{cid}/versions/1/restore", json={}, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["version"]["version_number"] == 4
    assert body["version"]["change_note"] == "Restored to version 1"
    assert body["content"]["title"] == "Hello"
    assert body["content"]["slug"] == "hello"

    restored = client.get(f"/api/v1/contents/{cid}/versions/4", headers=headers).get_json()
    assert restored["elements"] == original["elements"]

    numbers = db.session.query(ContentVersion.version_number).filter_by(content_id=cid).all()
    assert sorted(n for (n,) in numbers) == [1, 2, 3, 4]
    again = client.get(f"/api/v1/contents/{cid}/versions/1", headers=headers).get_json()
    assert again["elements"] == original["elements"]


def test_unknown_version(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])

    resp = client.get(f"/api/v1/contents/{content['id']}/versions/9", headers=headers)
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "VersionNotFound"

    resp = client.post(f"/api/v1/contents/{content['id']}/versions/9/restore", headers=headers)
    assert resp.status_code == 404


def test_compare_versions(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])
    cid = content["id"]
    elements = content["elements"]
    elements[0]["data"] = {"content": "Changed"}
    _update(client, headers, cid, title="Renamed", elements=elements)

    resp = client.get(f"/api/v1/contents/{cid}/versions/compare?from=1&to=2", headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["title_changed"] is True
    assert body["summary"] == {"added": 0, "removed": 0, "modified": 1}

    resp = client.get(f"/api/v1/contents/{cid}/versions/compare?from=1", headers=headers)
    assert resp.status_code == 400


def test_publish_requires_content_meta(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"], metadata={})

    resp = client.post(f"/api/v1/contents/{content['id']}/publish", headers=headers)
    assert resp.status_code == 422
    assert "metadata.author" in resp.get_json()["errors"]

    _update(client, headers, content["id"], metadata={"author": "Ada"})
    resp = client.post(f"/api/v1/contents/{content['id']}/publish", headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["content"]["status"] == "published"
    assert body["content"]["published_version_id"] == body["version"]["id"]


def test_published_content_keeps_publish_requirements(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])
    client.post(f"/api/v1/contents/{content['id']}/publish", headers=headers)

    resp = _update(client, headers, content["id"], metadata={})
    assert resp.status_code == 422


def test_archived_content_is_frozen(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])

    resp = client.post(f"/api/v1/contents/{content['id']}/archive", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["content"]["status"] == "archived"

    assert _update(client, headers, content["id"], title="Nope").status_code == 409
    resp = client.post(f"/api/v1/contents/{content['id']}/publish", headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "InvalidTransition"
    resp = client.post(f"/api/v1/contents/{content['id']}/versions/1/restore", headers=headers)
    assert resp.status_code == 409


def test_unpublish_returns_to_draft(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])
    client.post(f"/api/v1/contents/{content['id']}/publish", headers=headers)

    resp = client.post(f"/api/v1/contents/{content['id']}/unpublish", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["content"]["status"] == "draft"
    assert resp.get_json()["version"]["version_number"] == 3


def test_duplicate_content(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])

    first = client.post(f"/api/v1/contents/{content['id']}/duplicate", headers=headers).get_json()
    second = client.post(f"/api/v1/contents/{content['id']}/duplicate", headers=headers).get_json()

    assert first["slug"] == "hello-copy"
    assert second["slug"] == "hello-copy-2"
    assert first["title"] == "Hello (Copy)"
    assert first["status"] == "draft"
    assert first["current_version"] == 1
    assert first["elements"][0]["id"] != content["elements"][0]["id"]


def test_delete_content_removes_versions(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"])

    resp = client.delete(f"/api/v1/contents/{content['id']}", headers=headers)
    assert resp.status_code == 200
    assert client.get(f"/api/v1/contents/{content['id']}", headers=headers).status_code == 404
    assert db.session.query(ContentVersion).filter_by(content_id=content["id"]).count() == 0


def test_role_permissions(client, auth_headers, collection, make_content):
    content = make_content(auth_headers(), collection["id"])

    viewer = auth_headers("viewer")
    author = auth_headers("author")
    editor = auth_headers("editor")

    assert client.get(f"/api/v1/contents/{content['id']}", headers=viewer).status_code == 200
    assert _update(client, viewer, content["id"], title="x").status_code == 403
    assert _update(client, author, content["id"], title="By author").status_code == 200

    resp = client.post(f"/api/v1/contents/{content['id']}/publish", headers=author)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Forbidden"
    assert client.post(f"/api/v1/contents/{content['id']}/publish", headers=editor).status_code == 200


def test_actor_is_recorded_on_versions(client, auth_headers, collection, make_content):
    content = make_content(auth_headers(actor="alice"), collection["id"])
    versions = _versions(client, auth_headers(), content["id"])
    assert versions[0]["created_by"] == "alice"


def test_render_filters_editions(client, auth_headers, collection, make_content):
    headers = auth_headers()
    content = make_content(headers, collection["id"], elements=[
        {"type": "text", "data": {"content": "Everyone"}},
        {"type": "text", "data": {"content": "German"}, "editions": ["de"]},
    ])

    resp = client.get(f"/api/v1/contents/{content['id']}/render?edition=en", headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert [e["data"]["content"] for e in body["elements"]] == ["Everyone"]
    assert body["edition"] == "en"


def test_openapi_document_is_served(client):
    resp = client.get("/openapi/cms.yaml")
    assert resp.status_code == 200
    assert b"openapi: 3.0.3" in resp.data


def _notes_collection(client, headers, list_view_settings):
    resp = client.post(
        "/api/v1/collections",
        json={"name": "Notes", "slug": "notes", "schema": {"list_view_settings": list_view_settings}},
        headers=headers,
    )
    assert resp.status_code == 201
    return resp.get_json()["id"]


def test_listing_sorts_by_version_column(client, auth_headers, make_content):
    headers = auth_headers()
    collection_id = _notes_collection(client, headers, {"default_sort_column": "current_version"})
    make_content(headers, collection_id, slug="once")
    edited = make_content(headers, collection_id, slug="twice")
    _update(client, headers, edited["id"], title="Edited")

    resp = client.get(f"/api/v1/collections/{collection_id}/contents", headers=headers)

    assert resp.status_code == 200
    assert [item["slug"] for item in resp.get_json()["items"]] == ["twice", "once"]


@pytest.mark.parametrize("column", ["is_locked", "editions", "no_such_column", 42])
def test_listing_tolerates_any_default_sort_column(client, auth_headers, make_content, column):
    headers = auth_headers()
    collection_id = _notes_collection(client, headers, {"default_sort_column": column})
    make_content(headers, collection_id)

    resp = client.get(f"/api/v1/collections/{collection_id}/contents", headers=headers)

    assert resp.status_code == 200
    assert len(resp.get_json()["items"]) == 1


def test_listing_accepts_default_per_page_outside_options(client, auth_headers, make_content):
    headers = auth_headers()
    collection_id = _notes_collection(client, headers, {"default_per_page": 15})
    make_content(headers, collection_id)
    url = f"/api/v1/collections/{collection_id}/contents"

    resp = client.get(url, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["pagination"]["per_page"] == 15

    assert client.get(f"{url}?per_page=15", headers=headers).status_code == 400
    assert client.get(f"{url}?per_page=50", headers=headers).status_code == 200


def test_failed_save_leaves_no_version_behind(app, auth_headers, collection, make_content, monkeypatch):
    content = make_content(auth_headers(), collection["id"])
    update_module = importlib.import_module("blockcms.application.cms.update_content")

    def failing_log_action(**kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(update_module, "log_action", failing_log_action)

    with pytest.raises(RuntimeError):
        update_module.update_content(content_id=content["id"], actor_id="user-1", data={"title": "Lost"})

    stored = db.session.get(Content, content["id"])
    assert stored.current_version == 1
    assert stored.title == "Hello"
    assert ContentVersion.query.filter_by(content_id=content["id"]).count() == 1


def test_version_number_collision_is_a_conflict(client, auth_headers, collection, make_content, monkeypatch):
    headers = auth_headers()
    content = make_content(headers, collection["id"])
    version_module = importlib.import_module("blockcms.application.cms.create_version")
    monkeypatch.setattr(version_module, "next_version_number", lambda content_id: 1)

    resp = _update(client, headers, content["id"], title="Racing")

    assert resp.status_code == 409
    assert resp.get_json()["error"] == "Conflict"
    assert ContentVersion.query.filter_by(content_id=content["id"]).count() == 1
    assert db.session.get(Content, content["id"]).current_version == 1
