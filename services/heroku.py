import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

HEROKU_ACCEPT = "application/vnd.heroku+json; version=3"
DEFAULT_BASE_URL = "https://api.heroku.com"


class HerokuError(Exception):
    """Any failure talking to the Heroku platform API."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AppInfo:
    name: str
    state: str


def _app_info(payload: Any) -> AppInfo:
    if not isinstance(payload, dict) or not payload.get("name"):
        raise HerokuError("Malformed app payload from Heroku.")
    state = "maintenance" if payload.get("maintenance") else "active"
    return AppInfo(name=str(payload["name"]), state=state)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason or "request failed"


class HerokuClient:
    """Thin client for the handful of Heroku platform API calls the bot needs."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = str(base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout_seconds = float(timeout_seconds)
        self._headers = {
            "Accept": HEROKU_ACCEPT,
            "Authorization": f"Bearer {api_key}",
        }
        self._shared_session = session
        if session is not None:
            session.headers.update(self._headers)
        # One Session per worker thread; calls never wait on each other.
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def _session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self._headers)
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _request(self, method: str, path: str) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("Heroku %s %s", method, url)
        try:
            response = self._session().request(method, url, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise HerokuError(f"Heroku request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            message = _error_message(response)
            logger.warning("Heroku %s %s returned %s: %s", method, path, response.status_code, message)
            raise HerokuError(
                f"Heroku API error ({response.status_code}): {message}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise HerokuError("Heroku returned a malformed response.") from exc

    def list_apps(self) -> List[AppInfo]:
        payload = self._request("GET", "/apps")
        if not isinstance(payload, list):
            raise HerokuError("Malformed app list from Heroku.")
        return [_app_info(item) for item in payload]

    def get_app(self, name: str) -> AppInfo:
        return _app_info(self._request("GET", f"/apps/{quote(name, safe='')}"))

    def restart_app(self, name: str) -> None:
        # Deleting the dyno collection restarts every dyno of the app.
        self._request("DELETE", f"/apps/{quote(name, safe='')}/dynos")

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

