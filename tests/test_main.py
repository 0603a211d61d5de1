"""
Tests for the main application endpoints.
"""
from fastapi.testclient import TestClient

from medimantra.auth.models import User, UserRole
from medimantra.main import create_app


def test_root_endpoint(client):
    """
    Test the root endpoint returns a welcome message.
    """
    response = client.get("/")
    assert response.status_code == 200
    assert "MediMantra" in response.json()["message"]


def test_health_check(client):
    """
    Test the health check endpoint reports the database connection.
    """
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}


def test_responses_carry_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Process-Time" in response.headers

    generated = client.get("/")
    assert generated.headers["X-Request-ID"]


def test_startup_bootstraps_admin(settings, database):
    """
    The lifespan hook creates the first admin when bootstrap credentials are set.
    """
    admin_settings = settings.model_copy(update={
        "bootstrap_admin_email": "Root@MediMantra.com",
        "bootstrap_admin_password": "bootstrap-password",
    })
    with TestClient(create_app(admin_settings, database)):
        pass

    session = database.SessionLocal()
    try:
        admins = session.query(User).filter(User.role == UserRole.ADMIN).all()
        assert [admin.email for admin in admins] == ["root@medimantra.com"]
    finally:
        session.close()
