"""
Login session handling.

The bearer token and the signed-in user's profile survive across runs in a
small JSON file; the API client reads the token from here on every request.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from estate_admin.core.exceptions import EstateAdminError, ResponseFormatError
from estate_admin.core.models import User
from estate_admin.data.api_client import ApiClient
from estate_admin.data.transform import snake_case_keys

logger = structlog.get_logger(__name__)


class SessionStore:
    """Persist ``{token, user}`` for the signed-in operator."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file", path=str(self.path), error=str(e))
            return {}

    def save(self, token: str, user: User) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"token": token, "user": user.model_dump(mode="json")}
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        self.path.chmod(0o600)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    @property
    def token(self) -> Optional[str]:
        return self.load().get("token")

    @property
    def user(self) -> Optional[User]:
        data = self.load().get("user")
        return User.model_validate(data) if data else None


class AuthService:
    """Sign in, sign out and inspect the current user."""

    def __init__(self, client: ApiClient, session: SessionStore) -> None:
        self.client = client
        self.session = session

    @staticmethod
    def _parse_user(data: Any) -> User:
        data = snake_case_keys(data) or {}
        if not isinstance(data, dict) or "id" not in data:
            raise ResponseFormatError("Backend returned no user profile")
        return User.model_validate(data)

    def login(self, email: str, password: str) -> User:
        body = self.client.post("/login", json={"email": email, "password": password}) or {}
        token = body.get("token")
        if not token:
            raise ResponseFormatError("Login response carried no token")
        user = self._parse_user(body.get("user"))
        self.session.save(token, user)
        logger.info("Signed in", user_id=user.id, role=user.role)
        return user

    def logout(self) -> None:
        """Tell the backend, then always forget the local session."""
        try:
            self.client.post("/logout")
        except EstateAdminError as e:
            logger.warning("Logout request failed; clearing local session anyway", error=str(e))
        finally:
            self.session.clear()

    def current_user(self) -> User:
        return self._parse_user(self.client.get("/user"))

    def stored_user(self) -> Optional[User]:
        return self.session.user

    def is_authenticated(self) -> bool:
        return bool(self.session.token)

    def update_password(self, current_password: str, password: str, confirmation: str) -> None:
        self.client.put(
            "/user/password",
            json={
                "current_password": current_password,
                "password": password,
                "password_confirmation": confirmation,
            },
        )
