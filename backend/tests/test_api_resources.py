"""Tests for credit, GitHub, file analysis and upload endpoints."""

from fastapi.testclient import TestClient


class TestCredits:
    def test_fresh_user(self, api_client: TestClient, auth_headers):
        response = api_client.get("/credits", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["isAdmin"] is False
        assert data["documentCredits"] == 2
        assert data["interviewCredits"] == 2
        assert data["documentCreditsResetAt"] is None
        assert data["documentTimeUntilReset"] is None

    def test_admin_is_unlimited(self, api_client: TestClient, make_user):
        _, key = make_user(is_admin=True)

        response = api_client.get("/credits", headers={"Authorization": f"Bearer {key}"})

        data = response.json()
        assert data["isAdmin"] is True
        assert data["documentCredits"] is None
        assert data["interviewCredits"] is None


class TestGitHub:
    def test_repo_listing_filters_files(self, api_client: TestClient):
        response = api_client.get("/github/repo", params={"url": "https://github.com/octo/demo"})

        assert response.status_code == 200
        data = response.json()
        assert data["repo"] == "octo/demo"
        assert data["defaultBranch"] == "main"
        assert [f["path"] for f in data["files"]] == ["src/app.py", "README.md"]

    def test_invalid_url(self, api_client: TestClient):
        response = api_client.get("/github/repo", params={"url": "demo"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid GitHub URL"}

    def test_missing_repository(self, api_client: TestClient):
        response = api_client.get("/github/repo", params={"url": "octo/missing"})

        assert response.status_code == 404

    def test_file_content(self, api_client: TestClient):
        response = api_client.get(
            "/github/content", params={"owner": "octo", "repo": "demo", "path": "src/app.py"}
        )

        assert response.status_code == 200
        assert response.json() == {"content": "print('hello')\n"}


class TestAnalyze:
    def test_analyze_file(self, api_client: TestClient, auth_headers, fake_provider):
        response = api_client.post(
            "/analyze/file",
            json={"content": "print('hi')", "path": "src/app.py", "language": "python"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["analysis"]
        assert "src/app.py" in fake_provider.calls[0]["user"]

    def test_analyze_file_requires_path(self, api_client: TestClient, auth_headers):
        response = api_client.post(
            "/analyze/file", json={"content": "x", "path": ""}, headers=auth_headers
        )

        assert response.status_code == 400

    def test_analyze_repository(self, api_client: TestClient, auth_headers):
        response = api_client.post(
            "/analyze/files", json={"repoUrl": "octo/demo"}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["repo"] == "octo/demo"
        assert [a["path"] for a in data["fileAnalyses"]] == ["src/app.py", "README.md"]


class TestUploads:
    def test_sign_upload(self, api_client: TestClient, auth_headers):
        response = api_client.post("/uploads/sign", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["signature"] == "abc123"
        assert data["cloudName"] == "demo"
        assert data["folder"] == "gitdoc_uploads"

    def test_sign_requires_auth(self, api_client: TestClient):
        assert api_client.post("/uploads/sign").status_code == 401
