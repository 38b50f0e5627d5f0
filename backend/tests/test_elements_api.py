import pytest


@pytest.fixture
def content(client, auth_headers, collection, make_content):
    return make_content(auth_headers(), collection["id"], elements=[
        {"id": "intro", "type": "text", "data": {"content": "Intro"}},
        {"id": "box", "type": "wrapper", "data": {"layout": "grid"}, "children": [
            {"id": "inner", "type": "text", "data": {"content": "Inner"}},
        ]},
    ])


def _url(content, suffix=""):
    return f"/api/v1/contents/{content['id']}/elements{suffix}"


def test_add_element_at_root_and_in_wrapper(client, auth_headers, content):
    headers = auth_headers()

    resp = client.post(_url(content), json={
        "element": {"type": "text", "data": {"content": "First"}},
        "order": 0,
    }, headers=headers)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["version"]["version_number"] == 2
    assert [e["order"] for e in body["content"]["elements"]] == [0, 1, 2]
    assert body["content"]["elements"][0]["id"] == body["element"]["id"]

    resp = client.post(_url(content), json={
        "element": {"type": "text", "data": {"content": "Nested"}},
        "parent_id": "box",
    }, headers=headers)
    assert resp.status_code == 201
    wrapper = next(e for e in resp.get_json()["content"]["elements"] if e["id"] == "box")
    assert [c["data"]["content"] for c in wrapper["children"]] == ["Inner", "Nested"]


def test_add_under_non_container_is_rejected(client, auth_headers, content):
    resp = client.post(_url(content), json={
        "element": {"type": "text", "data": {"content": "x"}},
        "parent_id": "intro",
    }, headers=auth_headers())
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "InvalidMove"


def test_add_invalid_element(client, auth_headers, content):
    resp = client.post(_url(content), json={"element": {"type": "text", "data": {}}}, headers=auth_headers())
    assert resp.status_code == 422
    assert "element.data.content" in resp.get_json()["errors"]

    resp = client.post(_url(content), json={"element": "text"}, headers=auth_headers())
    assert resp.status_code == 422


def test_move_element(client, auth_headers, content):
    resp = client.post(_url(content, "/intro/move"), json={"parent_id": "box", "order": 0}, headers=auth_headers())
    assert resp.status_code == 200
    elements = resp.get_json()["content"]["elements"]
    assert [e["id"] for e in elements] == ["box"]
    assert [c["id"] for c in elements[0]["children"]] == ["intro", "inner"]


def test_move_into_descendant_is_rejected(client, auth_headers, content):
    resp = client.post(_url(content, "/box/move"), json={"parent_id": "inner"}, headers=auth_headers())
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "InvalidMove"


def test_move_requires_integer_order(client, auth_headers, content):
    resp = client.post(_url(content, "/intro/move"), json={"order": "first"}, headers=auth_headers())
    assert resp.status_code == 400


def test_update_element(client, auth_headers, content):
    resp = client.patch(_url(content, "/inner"), json={"data": {"content": "Changed"}}, headers=auth_headers())
    assert resp.status_code == 200
    assert resp.get_json()["element"]["data"] == {"content": "Changed"}

    resp = client.patch(_url(content, "/inner"), json={"data": {"content": 5}}, headers=auth_headers())
    assert resp.status_code == 422

    resp = client.patch(_url(content, "/nope"), json={"data": {}}, headers=auth_headers())
    assert resp.status_code == 404


def test_delete_element_removes_subtree(client, auth_headers, content):
    resp = client.delete(_url(content, "/box"), headers=auth_headers())
    assert resp.status_code == 200
    elements = resp.get_json()["content"]["elements"]
    assert [e["id"] for e in elements] == ["intro"]
    assert resp.get_json()["version"]["version_number"] == 2


def test_element_edits_respect_expected_version(client, auth_headers, content):
    resp = client.delete(_url(content, "/box"), headers={**auth_headers(), "If-Match": "7"})
    assert resp.status_code == 409
