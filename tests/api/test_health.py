"""
Tests for the health check endpoint.
"""


def test_health_check_returns_200(client):
    """
    Verify the health endpoint responds with HTTP 200.

    It needs no token, so load balancers can poll it.
    """
    response = client.get("/health")
    assert response.status_code == 200


def test_health_check_returns_service_name(client):
    response = client.get("/health")
    data = response.json()
    assert data["service"] == "branch-finance"


def test_health_check_reports_database_status(client):
    """
    Verify the response includes database connectivity status.
    """
    response = client.get("/health")
    data = response.json()
    assert data["database"] in ("healthy", "unhealthy")
    assert data["status"] == "healthy"
