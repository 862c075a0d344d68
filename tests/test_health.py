"""Tests for the root and health endpoints and the request middleware."""


class TestRoot:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "mediafolders API"
        assert data["status"] == "running"


class TestHealth:

    def test_health_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["db"] == "ok"
        assert data["folder_count"] == 0

    def test_health_counts_active_folders(self, client, owner_headers):
        client.post("/api/folders", json={"name": "clips"}, headers=owner_headers)
        assert client.get("/health").json()["folder_count"] == 1


class TestRequestContext:

    def test_request_id_generated(self, client):
        response = client.get("/")
        assert response.headers["X-Request-ID"]
        assert response.headers["X-Response-Time"].endswith("ms")

    def test_request_id_propagated(self, client):
        response = client.get("/", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_error_responses_carry_request_id(self, client, owner):
        response = client.get("/api/folders")
        assert response.status_code == 401
        assert response.headers["X-Request-ID"]
