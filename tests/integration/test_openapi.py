"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from soulmark.api.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for the application (lifespan not started)."""
    return TestClient(app)


@pytest.fixture
def schema(client: TestClient) -> dict:
    response = client.get("/openapi.json")
    assert response.status_code == 200
    return response.json()


class TestOpenAPISchema:
    def test_title_and_version(self, schema: dict) -> None:
        assert schema["info"]["title"] == "soulmark-registry"
        assert schema["info"]["version"] == "0.1.0"

    @pytest.mark.parametrize(
        ("path", "method"),
        [
            ("/v1/donations/checkout", "post"),
            ("/v1/donations/verify/{session_id}", "get"),
            ("/v1/donations", "get"),
            ("/v1/handles/{handle}/availability", "get"),
            ("/v1/handles/claim", "post"),
            ("/v1/orders", "post"),
            ("/v1/orders/{order_id}", "get"),
            ("/v1/orders/{order_id}/checkout", "post"),
            ("/v1/orders/confirm/{session_id}", "get"),
            ("/health", "get"),
        ],
    )
    def test_endpoint_documented(self, schema: dict, path: str, method: str) -> None:
        assert method in schema["paths"][path]

    def test_claim_request_schema(self, schema: dict) -> None:
        claim = schema["components"]["schemas"]["ClaimHandleRequest"]
        assert set(claim["required"]) == {"email", "handle", "mark"}

    def test_error_responses_documented(self, schema: dict) -> None:
        responses = schema["paths"]["/v1/handles/claim"]["post"]["responses"]
        assert "403" in responses
        assert "409" in responses
