"""
Integration tests for the correlation ID middleware.
"""
import uuid

import pytest
from fastapi.testclient import TestClient

from slotbook.api.app import app

client = TestClient(app)


@pytest.mark.integration
def test_correlation_id_generated():
    """Test that correlation ID is generated if not provided."""
    response = client.get("/health")

    assert response.status_code == 200
    assert "X-Correlation-ID" in response.headers

    correlation_id = response.headers["X-Correlation-ID"]
    try:
        uuid.UUID(correlation_id)
    except ValueError:
        pytest.fail(f"Correlation ID is not a valid UUID: {correlation_id}")


@pytest.mark.integration
def test_correlation_id_preserved():
    """Test that provided correlation ID is preserved in response."""
    custom_correlation_id = str(uuid.uuid4())

    response = client.get(
        "/health",
        headers={"X-Correlation-ID": custom_correlation_id}
    )

    assert response.status_code == 200
    assert response.headers["X-Correlation-ID"] == custom_correlation_id


@pytest.mark.integration
def test_correlation_id_in_error_body():
    """Error bodies carry the same correlation ID as the header."""
    custom_correlation_id = str(uuid.uuid4())

    response = client.get(
        "/availability",
        params={"provider_id": "not-a-uuid"},
        headers={"X-Correlation-ID": custom_correlation_id},
    )

    assert response.status_code == 400
    assert response.json()["correlation_id"] == custom_correlation_id
    assert response.headers["X-Correlation-ID"] == custom_correlation_id
