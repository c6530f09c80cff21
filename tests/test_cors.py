from fastapi.testclient import TestClient

from apps.api.app.main import create_app


def test_cors_preflight_allows_update_headers(monkeypatch) -> None:
    monkeypatch.setenv("OTA_SERVER_CORS_ALLOWED_ORIGINS", "http://127.0.0.1:3001")
    client = TestClient(create_app())

    response = client.options(
        "/expo/manifest",
        headers={
            "Origin": "http://127.0.0.1:3001",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": (
                "expo-platform,expo-runtime-version,ota-app-id,ota-organization-id"
            ),
        },
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == "http://127.0.0.1:3001"


def test_cors_preflight_rejects_unknown_origin(monkeypatch) -> None:
    monkeypatch.setenv("OTA_SERVER_CORS_ALLOWED_ORIGINS", "http://127.0.0.1:3001")
    client = TestClient(create_app())

    response = client.options(
        "/expo/manifest",
        headers={
            "Origin": "http://evil.example.test",
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers
