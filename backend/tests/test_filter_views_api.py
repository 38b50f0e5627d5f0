import pytest


@pytest.fixture
def seeded(client, auth_headers, collection, make_content):
    headers = auth_headers()
    for slug, author, rating in (("one", "Ada", 5), ("two", "Grace", 2), ("three", "Ada", None)):
        metadata = {"author": author}
        if rating is not None:
            metadata["rating"] = rating
        make_content(headers, collection["id"], title=slug.title(), slug=slug, metadata=metadata)
    return collection


def _by_author(author):
    return {
        "type": "group",
        "operator": "and",
        "children": [{"type": "condition", "field": "metadata.author", "operator": "equals", "value": author}],
    }


def test_ad_hoc_filter_with_sort_and_pagination(client, auth_headers, seeded):
    resp = client.post(
        f"/api/v1/collections/{seeded['id']}/contents/filter",
        json={
            "conditions": _by_author("Ada"),
            "sort": [{"field": "metadata.rating", "direction": "desc"}],
            "per_page": 10,
        },
        headers=auth_headers("viewer"),
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert [item["slug"] for item in body["items"]] == ["one", "three"]
    assert "elements" not in body["items"][0]
    assert body["pagination"] == {"page": 1, "per_page": 10, "total": 2, "total_pages": 1}


def test_invalid_filter_is_a_bad_request(client, auth_headers, seeded):
    resp = client.post(
        f"/api/v1/collections/{seeded['id']}/contents/filter",
        json={"conditions": {"type": "condition", "field": "status", "operator": "in", "value": "draft"}},
        headers=auth_headers(),
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "InvalidFilterCondition"


def test_per_page_must_be_an_option(client, auth_headers, seeded):
    resp = client.get(f"/api/v1/collections/{seeded['id']}/contents?per_page=7", headers=auth_headers())
    assert resp.status_code == 400


def test_saved_view_lifecycle(client, auth_headers, seeded):
    headers = auth_headers()
    base = f"/api/v1/collections/{seeded['id']}/filter-views"

    resp = client.post(base, json={
        "name": "Ada's posts",
        "conditions": _by_author("Ada"),
        "sort": [{"field": "title", "direction": "asc"}],
    }, headers=headers)
    assert resp.status_code == 201
    view = resp.get_json()
    assert view["slug"] == "ada-s-posts"

    listed = client.get(f"/api/v1/collections/{seeded['id']}/contents?filter_view={view['id']}", headers=headers)
    assert [item["slug"] for item in listed.get_json()["items"]] == ["one", "three"]

    resp = client.put(f"{base}/{view['id']}", json={"conditions": _by_author("Grace")}, headers=headers)
    assert resp.status_code == 200
    listed = client.get(f"/api/v1/collections/{seeded['id']}/contents?filter_view={view['id']}", headers=headers)
    assert [item["slug"] for item in listed.get_json()["items"]] == ["two"]

    assert [v["id"] for v in client.get(base, headers=headers).get_json()["items"]] == [view["id"]]
    assert client.delete(f"{base}/{view['id']}", headers=headers).status_code == 200
    assert client.get(f"{base}/{view['id']}", headers=headers).status_code == 404


def test_saved_view_rejects_unknown_fields(client, auth_headers, seeded):
    base = f"/api/v1/collections/{seeded['id']}/filter-views"
    resp = client.post(base, json={"name": "Bad", "sort": [{"field": "nope"}]}, headers=auth_headers())
    assert resp.status_code == 400


def test_system_view_cannot_be_deleted(client, auth_headers, seeded):
    headers = auth_headers()
    base = f"/api/v1/collections/{seeded['id']}/filter-views"
    view = client.post(base, json={"name": "All", "is_system": True}, headers=headers).get_json()

    resp = client.delete(f"{base}/{view['id']}", headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "SystemElementProtected"


def test_filter_fields_list_operators(client, auth_headers, seeded):
    resp = client.get(f"/api/v1/collections/{seeded['id']}/filter-fields", headers=auth_headers())
    fields = {f["field"]: f for f in resp.get_json()["items"]}
    rating_ops = [op["value"] for op in fields["metadata.rating"]["operators"]]
    assert "gt" in rating_ops
    assert "contains" not in rating_ops
