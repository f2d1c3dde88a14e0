from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError

from .errors import AuthError, JiraApiError
from state.models import AppConfig, SessionState


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
SESSION_PATH = "/rest/auth/1/session"
ISSUE_PATH = "/rest/api/2/issue/{issue_id}"
XSRF_COOKIE = "atlassian.xsrf.token"
REAUTH_STATUSES = (401, 403)

_JIRA_ID_RE = re.compile(r"[A-Z]+-[0-9]+", re.IGNORECASE)


class _SessionInfo(BaseModel):
    name: str
    value: str


class _LoginResponse(BaseModel):
    session: _SessionInfo


class _IssueFields(BaseModel):
    summary: str


class _Issue(BaseModel):
    fields: _IssueFields


def extract_jira_id(branch_name: str, jira_id_prefix: str) -> Optional[str]:
    """
    Find the first `KEY-123` token in `branch_name` (any case) and upper-case it.

    Returns the ID only if it starts with `jira_id_prefix`; otherwise None.

    >>> extract_jira_id("feature/jira-1234-x", "JIRA")
    'JIRA-1234'
    """
    m = _JIRA_ID_RE.search(branch_name)
    if m is None:
        return None
    jira_id = m.group(0).upper()
    if not jira_id.startswith(jira_id_prefix):
        return None
    return jira_id


class JiraClient:
    """
    Minimal JIRA REST client using cookie-based session authentication.

    Notes
    - Starts unauthenticated. A request answered with 401/403 triggers one
      `login()` and exactly one retry; a second failure is reported, never
      looped on.
    - The session cookie (and XSRF token, when the server sets one) is held in
      a `SessionState` and attached per request.
    - The stored password is decrypted only when a login is actually needed.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
        session: Optional[SessionState] = None,
    ) -> None:
        if not config.jira_url:
            raise ValueError("jira_url is required")
        self._config = config
        self._base_url = config.jira_url.rstrip("/")
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._timeout)
        self._session = session

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "JiraClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def session(self) -> Optional[SessionState]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    # --------------- Public API ---------------
    def login(self) -> SessionState:
        """
        Exchange username/password for a JIRA session.

        Raises AuthError when JIRA rejects the credentials and JiraApiError when
        the response cannot be understood. On failure the client stays
        unauthenticated.
        """
        url = f"{self._base_url}{SESSION_PATH}"
        body = {"username": self._config.username, "password": self._config.get_password()}
        logger.debug("Logging in to %s as %s", self._base_url, self._config.username)
        resp = self._send("POST", url, json=body)

        if not resp.is_success:
            raise AuthError(f"Failed to login to JIRA: HTTP {resp.status_code}")

        try:
            parsed = _LoginResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise JiraApiError(
                "Failed to parse JIRA login response", status_code=resp.status_code
            ) from exc

        self._session = SessionState(
            cookie_name=parsed.session.name,
            cookie_value=parsed.session.value,
            xsrf_token=resp.cookies.get(XSRF_COOKIE),
        )
        logger.debug("JIRA session established (xsrf=%s)", self._session.xsrf_token is not None)
        return self._session

    def get_issue_title(self, issue_id: str) -> str:
        """Return `fields.summary` of the issue, re-authenticating at most once."""
        url = f"{self._base_url}{ISSUE_PATH.format(issue_id=issue_id)}"
        resp = self._send("GET", url)

        if resp.status_code in REAUTH_STATUSES:
            logger.info("JIRA answered HTTP %s for %s; logging in and retrying", resp.status_code, issue_id)
            self.login()
            resp = self._send("GET", url)

        if not resp.is_success:
            raise JiraApiError(
                f"Failed to get JIRA issue {issue_id}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            issue = _Issue.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise JiraApiError(
                f"Failed to parse JIRA issue {issue_id}", status_code=resp.status_code
            ) from exc
        return issue.fields.summary

    # --------------- Internal ---------------
    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._session is not None:
            headers.update(self._session.headers())
        return headers

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise JiraApiError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, url, resp.status_code)
        return resp


__all__ = [
    "JiraClient",
    "extract_jira_id",
    "DEFAULT_TIMEOUT",
]
