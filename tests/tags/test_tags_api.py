"""Tag route tests."""

from fastapi.testclient import TestClient


def _create_tag(client: TestClient, headers, name: str) -> dict:
    response = client.post("/tags", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["tag"]


class TestTagAdmin:
    def test_admin_creates(self, client: TestClient, admin_headers) -> None:
        response = client.post("/tags", json={"name": " Python "}, headers=admin_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Tag created successfully"
        assert body["tag"]["name"] == "Python"
        assert body["tag"]["post_count"] == 0

    def test_author_forbidden(self, client: TestClient, author_headers) -> None:
        response = client.post("/tags", json={"name": "x"}, headers=author_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    def test_anonymous_unauthorized(self, client: TestClient) -> None:
        assert client.post("/tags", json={"name": "x"}).status_code == 401

    def test_duplicate_ignores_case(self, client: TestClient, admin_headers) -> None:
        _create_tag(client, admin_headers, "Python")
        response = client.post("/tags", json={"name": "python"}, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["message"] == "Tag already exists"

    def test_rename_and_delete(self, client: TestClient, admin_headers) -> None:
        tag = _create_tag(client, admin_headers, "old")

        renamed = client.put(f"/tags/{tag['id']}", json={"name": "new"}, headers=admin_headers)
        assert renamed.json()["tag"]["name"] == "new"

        deleted = client.delete(f"/tags/{tag['id']}", headers=admin_headers)
        assert deleted.json() == {"message": "Tag deleted successfully"}

        missing = client.delete(f"/tags/{tag['id']}", headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "Tag not found"


class TestTagListing:
    def test_search_and_popular(
        self, client: TestClient, admin_headers, create_post
    ) -> None:
        py = _create_tag(client, admin_headers, "python")
        rust = _create_tag(client, admin_headers, "rust")
        _create_tag(client, admin_headers, "pytest")
        create_post(tags=[rust["id"]])
        create_post(tags=[rust["id"], py["id"]])

        names = [t["name"] for t in client.get("/tags").json()["tags"]]
        assert names == ["pytest", "python", "rust"]

        found = client.get("/tags", params={"search": "PY"}).json()["tags"]
        assert [t["name"] for t in found] == ["pytest", "python"]

        popular = client.get("/tags", params={"popular": "true"}).json()["tags"]
        assert [(t["name"], t["post_count"]) for t in popular] == [
            ("rust", 2),
            ("python", 1),
            ("pytest", 0),
        ]

    def test_listing_refreshes_after_create(
        self, client: TestClient, admin_headers
    ) -> None:
        assert client.get("/tags").json()["tags"] == []
        _create_tag(client, admin_headers, "fresh")
        assert [t["name"] for t in client.get("/tags").json()["tags"]] == ["fresh"]

    def test_deleting_tag_detaches_from_posts(
        self, client: TestClient, admin_headers, create_post
    ) -> None:
        tag = _create_tag(client, admin_headers, "gone")
        post = create_post(tags=[tag["id"]])
        client.delete(f"/tags/{tag['id']}", headers=admin_headers)
        assert client.get(f"/posts/{post['id']}").json()["post"]["tag_ids"] == []

    def test_post_counts_refresh_after_post_write(
        self, client: TestClient, admin_headers, create_post
    ) -> None:
        tag = _create_tag(client, admin_headers, "counted")
        assert client.get("/tags").json()["tags"][0]["post_count"] == 0
        create_post(tags=[tag["id"]])
        assert client.get("/tags").json()["tags"][0]["post_count"] == 1


class TestTagNameValidation:
    def test_script_only_name_is_validation_error(
        self, client: TestClient, admin_headers
    ) -> None:
        response = client.post(
            "/tags", json={"name": "<script>x</script>  "}, headers=admin_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "ValidationError"
        assert body["details"] == [{"field": "name", "message": "Tag name is required"}]

    def test_blank_rename_is_validation_error(
        self, client: TestClient, admin_headers
    ) -> None:
        tag = _create_tag(client, admin_headers, "keep")
        response = client.put(
            f"/tags/{tag['id']}", json={"name": "   "}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "name"
