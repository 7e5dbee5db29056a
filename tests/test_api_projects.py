"""
tests/test_api_projects.py — Project registration and health endpoint tests.
"""

BASE = "/api/v1"


class TestProjects:
    def test_create_with_new_tenant_slug(self, client):
        rv = client.post(f"{BASE}/projects", json={
            "tenant_slug": "Acme", "code": "erp", "name": "ERP rollout",
            "start_date": "2026-01-01", "end_date": "2026-12-31",
        })
        assert rv.status_code == 201
        data = rv.get_json()
        assert data["code"] == "ERP"
        assert data["end_date"] == "2026-12-31"

        listing = client.get(f"{BASE}/projects?tenant_id={data['tenant_id']}").get_json()
        assert [p["code"] for p in listing["items"]] == ["ERP"]

    def test_create_with_tenant_id(self, client, tenant):
        rv = client.post(f"{BASE}/projects", json={"tenant_id": tenant.id, "code": "X", "name": "X"})
        assert rv.status_code == 201
        assert rv.get_json()["tenant_id"] == tenant.id

    def test_duplicate_code_is_409(self, client, project):
        rv = client.post(f"{BASE}/projects", json={
            "tenant_id": project.tenant_id, "code": "prj", "name": "Again",
        })
        assert rv.status_code == 409
        assert rv.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_missing_fields(self, client, tenant):
        assert client.post(f"{BASE}/projects", json={"code": "A", "name": "A"}).status_code == 400
        rv = client.post(f"{BASE}/projects", json={"tenant_id": tenant.id, "name": "No code"})
        assert rv.status_code == 400
        assert rv.get_json()["error"] == "code is required"

    def test_inverted_dates(self, client, tenant):
        rv = client.post(f"{BASE}/projects", json={
            "tenant_id": tenant.id, "code": "D", "name": "D",
            "start_date": "2026-05-01", "end_date": "2026-04-01",
        })
        assert rv.status_code == 400

    def test_unknown_tenant(self, client):
        rv = client.post(f"{BASE}/projects", json={"tenant_id": 999, "code": "A", "name": "A"})
        assert rv.status_code == 404

    def test_list_requires_tenant(self, client):
        assert client.get(f"{BASE}/projects").status_code == 400

    def test_get_unknown_project(self, client):
        assert client.get(f"{BASE}/projects/12345").status_code == 404


class TestHealthAndGuards:
    def test_health(self, client):
        assert client.get(f"{BASE}/health").get_json()["status"] == "ok"
        assert client.get(f"{BASE}/health/ready").status_code == 200
        data = client.get(f"{BASE}/health/live").get_json()
        assert data["checks"]["database"]["status"] == "ok"

    def test_non_json_body_is_415(self, client, project):
        rv = client.post(
            f"{BASE}/projects/{project.id}/plan-items", data="name=x",
            content_type="application/x-www-form-urlencoded",
        )
        assert rv.status_code == 415
        items = client.get(f"{BASE}/projects/{project.id}/plan-items").get_json()
        assert items["total"] == 0

    def test_plain_text_body_is_415(self, client, project):
        rv = client.post(
            f"{BASE}/projects/{project.id}/plan/commit", data="user_id=u1", content_type="text/plain",
        )
        assert rv.status_code == 415

    def test_bodyless_post_is_allowed(self, client, project):
        rv = client.post(f"{BASE}/projects/{project.id}/plan/validate")
        assert rv.status_code == 200

    def test_request_id_header(self, client):
        rv = client.get(f"{BASE}/health", headers={"X-Request-ID": "abc-123"})
        assert rv.headers["X-Request-ID"] == "abc-123"
