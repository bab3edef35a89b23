# =============================================================================
# File: tests/conftest.py
# Purpose: App + client fixtures with per-test data and upload directories.
# =============================================================================
import pytest

from intake import create_app

ADMIN = {"username": "admin", "password": "admin123"}


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "data_dir": str(tmp_path / "data"),
            "upload_dir": str(tmp_path / "uploads"),
            "records_file": "",
            "users_file": "",
            "record_backend": "json",
            "bcrypt_rounds": 4,
            "admin_username": "admin",
            "admin_password": "admin123",
            "secret_key": "test-secret",
            "TESTING": True,
        }
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    rv = client.post("/admin/login", data=ADMIN)
    assert rv.status_code == 302
    return client


@pytest.fixture
def store(app):
    return app.extensions["intake"].records


@pytest.fixture
def uploads(app):
    return app.extensions["intake"].attachments
