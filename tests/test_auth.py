"""
Tests for login sessions.
"""

import httpx
import pytest

from estate_admin.core.config import ApiConfig
from estate_admin.core.exceptions import AuthenticationError
from estate_admin.data.api_client import ApiClient
from estate_admin.data.auth import AuthService, SessionStore


@pytest.fixture
def session(tmp_path):
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def auth_client(backend, session):
    """Client that authenticates from the session file only."""
    config = ApiConfig(ESTATE_API_BASE_URL="http://testserver/api")
    client = ApiClient(
        config,
        token_provider=lambda: session.token,
        on_unauthorized=session.clear,
        transport=httpx.MockTransport(backend.handler),
    )
    yield client
    client.close()


@pytest.fixture
def service(auth_client, session, backend):
    backend.users["ann@example.com"] = {
        "id": 1,
        "name": "Ann",
        "email": "ann@example.com",
        "password": "secret",
        "role": "admin",
    }
    return AuthService(auth_client, session)


class TestAuthService:
    """Test sign in, sign out and session persistence."""

    def test_login_stores_token_and_user(self, service, session):
        user = service.login("ann@example.com", "secret")

        assert user.id == "1"
        assert user.role == "admin"
        assert session.token == "issued-token"
        assert session.user.email == "ann@example.com"
        assert service.is_authenticated()

    def test_later_requests_carry_token(self, service, backend):
        service.login("ann@example.com", "secret")

        service.current_user()

        assert backend.requests[-1].headers["Authorization"] == "Bearer issued-token"

    def test_bad_credentials(self, service, session):
        with pytest.raises(AuthenticationError) as exc_info:
            service.login("ann@example.com", "wrong")

        assert exc_info.value.server_message == "Invalid credentials"
        assert not service.is_authenticated()

    def test_logout_clears_even_when_backend_fails(self, service, session, backend):
        service.login("ann@example.com", "secret")
        backend.fail_next(500)

        service.logout()

        assert session.token is None
        assert service.stored_user() is None

    def test_unauthorized_response_clears_session(self, service, session, backend):
        """Test an expired token forgets the stored session."""
        service.login("ann@example.com", "secret")
        backend.fail_next(401, {"message": "Unauthenticated."})

        with pytest.raises(AuthenticationError):
            service.current_user()

        assert session.token is None

    def test_update_password(self, service, backend):
        service.login("ann@example.com", "secret")

        service.update_password("secret", "new-secret", "new-secret")

        request = backend.requests_to("PUT", "/user/password")[0]
        assert b"password_confirmation" in request.content


class TestSessionStore:
    def test_missing_file(self, session):
        assert session.load() == {}
        assert session.token is None

    def test_corrupt_file_ignored(self, session):
        session.path.write_text("{not json", encoding="utf-8")
        assert session.load() == {}
