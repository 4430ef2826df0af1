import logging
from typing import Any

import requests

from weighbridge.client.transport import send
from weighbridge.core.config import settings
from weighbridge.core.errors import AuthExpired

logger = logging.getLogger(__name__)


class SessionService:
    """
    Holds the bearer token and the signed-in staff member for one terminal.

    Injected into `WeighbridgeClient`; nothing is kept in module globals, so
    two terminals in one process get two independent sessions.
    """

    def __init__(self, http: Any | None = None, *, base_url: str | None = None, timeout: float | None = None) -> None:
        self.http = http if http is not None else requests.Session()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.request_timeout_seconds if timeout is None else timeout
        self._token: str | None = None
        self._user: dict | None = None

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def current_user(self) -> dict:
        if self._token is None or self._user is None:
            raise AuthExpired("Not signed in")
        return self._user

    def auth_headers(self) -> dict:
        if self._token is None:
            raise AuthExpired("Not signed in")
        return {"Authorization": f"Bearer {self._token}"}

    def login(self, identifier: str, password: str) -> dict:
        out = send(
            self.http,
            "POST",
            self.url("/api/auth/login"),
            timeout=self.timeout,
            json={"identifier": identifier, "password": password},
        )
        self._token = out["access_token"]
        try:
            self._user = self.refresh_user()
        except AuthExpired:
            self.clear()
            raise
        logger.info("Signed in as %s (%s)", self._user.get("username"), self._user.get("role"))
        return self._user

    def refresh_user(self) -> dict:
        self._user = send(self.http, "GET", self.url("/api/staff/me"), timeout=self.timeout, headers=self.auth_headers())
        return self._user

    def logout(self) -> None:
        if self._token is None:
            return
        try:
            send(self.http, "POST", self.url("/api/auth/logout"), timeout=self.timeout, headers=self.auth_headers())
        except AuthExpired:
            # Already invalid server-side; the local state is cleared either way.
            pass
        finally:
            self.clear()

    def clear(self) -> None:
        self._token = None
        self._user = None
