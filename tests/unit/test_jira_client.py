from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest

from common.errors import AuthError, CryptoError, JiraApiError
from common.jira import JiraClient, extract_jira_id
from state.models import AppConfig, SessionState


BASE = "https://jira.example.com"
ISSUE_URL = f"{BASE}/rest/api/2/issue/JIRA-55"
SESSION_URL = f"{BASE}/rest/auth/1/session"


def _config(password: str = "s3cret") -> AppConfig:
    return AppConfig.create(BASE, "alice", password, "JIRA")


class _Recorder:
    """MockTransport handler that replays a scripted list of responses per path."""

    def __init__(self, plan: Dict[str, List[httpx.Response]]) -> None:
        self.plan = {k: list(v) for k, v in plan.items()}
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.plan.get(request.url.path)
        if not queue:
            return httpx.Response(500, json={"unexpected": request.url.path})
        return queue.pop(0)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


def _client(rec: _Recorder, config: AppConfig | None = None, **kwargs: Any) -> JiraClient:
    http = httpx.Client(transport=httpx.MockTransport(rec), timeout=10.0)
    return JiraClient(config or _config(), client=http, **kwargs)


def _login_ok() -> httpx.Response:
    return httpx.Response(200, json={"session": {"name": "JSESSIONID", "value": "abc123"}})


def _issue_ok(summary: str = "Fix crash") -> httpx.Response:
    return httpx.Response(200, json={"fields": {"summary": summary}})


def test_success_without_login():
    rec = _Recorder({"/rest/api/2/issue/JIRA-55": [_issue_ok()]})
    with _client(rec) as jira:
        assert jira.get_issue_title("JIRA-55") == "Fix crash"
        assert not jira.is_authenticated

    assert rec.calls("POST", "/rest/auth/1/session") == []
    assert len(rec.calls("GET", "/rest/api/2/issue/JIRA-55")) == 1
    assert "cookie" not in rec.requests[0].headers


def test_success_does_not_decrypt_password(monkeypatch):
    def fail_decrypt(blob):  # noqa: ARG001
        raise AssertionError("password should not be decrypted")

    monkeypatch.setattr("common.vault.decrypt", fail_decrypt)
    rec = _Recorder({"/rest/api/2/issue/JIRA-55": [_issue_ok()]})
    with _client(rec) as jira:
        assert jira.get_issue_title("JIRA-55") == "Fix crash"


@pytest.mark.parametrize("status", [401, 403])
def test_unauthorized_triggers_single_login_and_retry(status):
    rec = _Recorder(
        {
            "/rest/api/2/issue/JIRA-55": [httpx.Response(status), _issue_ok("Retried")],
            "/rest/auth/1/session": [_login_ok()],
        }
    )
    with _client(rec) as jira:
        assert jira.get_issue_title("JIRA-55") == "Retried"
        assert jira.is_authenticated

    logins = rec.calls("POST", "/rest/auth/1/session")
    gets = rec.calls("GET", "/rest/api/2/issue/JIRA-55")
    assert len(logins) == 1
    assert len(gets) == 2
    assert json.loads(logins[0].content) == {"username": "alice", "password": "s3cret"}
    assert "cookie" not in gets[0].headers
    assert gets[1].headers["cookie"] == "JSESSIONID=abc123"


def test_retry_failure_raises_without_second_login():
    rec = _Recorder(
        {
            "/rest/api/2/issue/JIRA-55": [httpx.Response(401), httpx.Response(401)],
            "/rest/auth/1/session": [_login_ok(), _login_ok()],
        }
    )
    with _client(rec) as jira:
        with pytest.raises(JiraApiError) as ei:
            jira.get_issue_title("JIRA-55")

    assert ei.value.status_code == 401
    assert len(rec.calls("POST", "/rest/auth/1/session")) == 1
    assert len(rec.calls("GET", "/rest/api/2/issue/JIRA-55")) == 2


def test_login_rejected_is_auth_error():
    rec = _Recorder(
        {
            "/rest/api/2/issue/JIRA-55": [httpx.Response(401)],
            "/rest/auth/1/session": [httpx.Response(401, json={"errorMessages": ["Login failed"]})],
        }
    )
    with _client(rec) as jira:
        with pytest.raises(AuthError):
            jira.get_issue_title("JIRA-55")
        assert not jira.is_authenticated

    assert len(rec.calls("GET", "/rest/api/2/issue/JIRA-55")) == 1


def test_login_captures_xsrf_token_and_sends_it():
    login = httpx.Response(
        200,
        json={"session": {"name": "JSESSIONID", "value": "abc123"}},
        headers={"set-cookie": "atlassian.xsrf.token=TOKEN-1; Path=/"},
    )
    rec = _Recorder(
        {
            "/rest/api/2/issue/JIRA-55": [httpx.Response(403), _issue_ok()],
            "/rest/auth/1/session": [login],
        }
    )
    with _client(rec) as jira:
        jira.get_issue_title("JIRA-55")
        assert jira.session is not None
        assert jira.session.xsrf_token == "TOKEN-1"

    retried = rec.calls("GET", "/rest/api/2/issue/JIRA-55")[1]
    assert retried.headers["x-atlassian-token"] == "TOKEN-1"


def test_malformed_login_body_is_api_error():
    rec = _Recorder({"/rest/auth/1/session": [httpx.Response(200, json={"nope": True})]})
    with _client(rec) as jira:
        with pytest.raises(JiraApiError):
            jira.login()
        assert not jira.is_authenticated


def test_existing_session_is_attached():
    rec = _Recorder({"/rest/api/2/issue/JIRA-55": [_issue_ok()]})
    session = SessionState(cookie_name="JSESSIONID", cookie_value="cached")
    with _client(rec, session=session) as jira:
        jira.get_issue_title("JIRA-55")
    assert rec.requests[0].headers["cookie"] == "JSESSIONID=cached"


def test_non_auth_error_status_is_not_retried():
    rec = _Recorder({"/rest/api/2/issue/JIRA-55": [httpx.Response(404)]})
    with _client(rec) as jira:
        with pytest.raises(JiraApiError) as ei:
            jira.get_issue_title("JIRA-55")
    assert ei.value.status_code == 404
    assert rec.calls("POST", "/rest/auth/1/session") == []


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"<html>not json</html>"),
        httpx.Response(200, json={"fields": {}}),
        httpx.Response(200, json={"fields": {"summary": None}}),
    ],
)
def test_bad_issue_body_is_api_error(response):
    rec = _Recorder({"/rest/api/2/issue/JIRA-55": [response]})
    with _client(rec) as jira:
        with pytest.raises(JiraApiError):
            jira.get_issue_title("JIRA-55")


def test_transport_error_is_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.Client(transport=httpx.MockTransport(handler))
    with JiraClient(_config(), client=http) as jira:
        with pytest.raises(JiraApiError):
            jira.get_issue_title("JIRA-55")


def test_corrupt_password_surfaces_crypto_error():
    cfg = _config()
    raw = cfg.encrypted_password or ""
    # Flip a character deep in the ciphertext region
    idx = len(raw) - 3
    bad = raw[:idx] + ("A" if raw[idx] != "A" else "B") + raw[idx + 1 :]
    cfg = cfg.model_copy(update={"encrypted_password": bad})

    rec = _Recorder({"/rest/api/2/issue/JIRA-55": [httpx.Response(401)]})
    with _client(rec, config=cfg) as jira:
        with pytest.raises(CryptoError):
            jira.get_issue_title("JIRA-55")


def test_trailing_slash_in_base_url_is_ignored():
    rec = _Recorder({"/rest/api/2/issue/JIRA-55": [_issue_ok()]})
    cfg = _config().model_copy(update={"jira_url": BASE + "/"})
    with _client(rec, config=cfg) as jira:
        jira.get_issue_title("JIRA-55")
    assert str(rec.requests[0].url) == ISSUE_URL


@pytest.mark.parametrize(
    "branch,prefix,expected",
    [
        ("feature/JIRA-1234-add-login", "JIRA", "JIRA-1234"),
        ("feature/jira-1234-x", "JIRA", "JIRA-1234"),
        ("feature/OTHER-99", "JIRA", None),
        ("feature/no-id-here", "JIRA", None),
        ("release/JIRA-55-fix", "JIRA", "JIRA-55"),
        ("JIRA-7", "JIRA", "JIRA-7"),
        ("feature/JIRA-1234", "jira", None),
    ],
)
def test_extract_jira_id(branch, prefix, expected):
    assert extract_jira_id(branch, prefix) == expected
