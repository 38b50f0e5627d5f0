import pytest
from flask_jwt_extended import create_access_token

from blockcms import create_app
from blockcms.extensions import db, custom_elements


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def registry(app):
    return custom_elements()


@pytest.fixture
def auth_headers(app):
    def _headers(role="admin", actor="user-1"):
        token = create_access_token(identity=actor, additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def collection(client, auth_headers):
    resp = client.post(
        "/api/v1/collections",
        json={
            "name": "Articles",
            "slug": "articles",
            "schema": {
                "allowed_elements": ["text", "wrapper", "media", "custom_cta"],
                "allowed_editions": ["de", "en"],
                "content_meta_fields": [
                    {"name": "author", "label": "Author", "type": "text", "required": True},
                    {"name": "rating", "label": "Rating", "type": "number"},
                ],
            },
        },
        headers=auth_headers(),
    )
    assert resp.status_code == 201, resp.get_data(as_text=True)
    return resp.get_json()


@pytest.fixture
def make_content(client):
    def _create(headers, collection_id, **overrides):
        body = {
            "title": "Hello",
            "slug": "hello",
            "elements": [{"type": "text", "data": {"content": "Hi"}}],
            "metadata": {"author": "Ada"},
        }
        body.update(overrides)
        resp = client.post(f"/api/v1/collections/{collection_id}/contents", json=body, headers=headers)
        assert resp.status_code == 201, resp.get_data(as_text=True)
        return resp.get_json()

    return _create
