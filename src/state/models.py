from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from common import vault
from common.errors import ConfigMissingError


class AppConfig(BaseModel):
    """
    Persistent helper configuration serialized to JSON on disk.

    Fields
    - jira_url: base URL of the JIRA server (e.g., "https://jira.example.com").
    - username: JIRA login name.
    - encrypted_password: vault blob holding the password (never plaintext).
    - jira_id_prefix: project key that extracted issue IDs must start with.
    """

    jira_url: str
    username: str
    encrypted_password: Optional[str] = Field(
        default=None,
        description="Self-contained vault blob (base64, no padding)",
    )
    jira_id_prefix: str

    @classmethod
    def create(cls, jira_url: str, username: str, password: str, jira_id_prefix: str) -> "AppConfig":
        """Build a config from a plaintext password, encrypting it immediately."""
        return cls(
            jira_url=jira_url.rstrip("/"),
            username=username,
            encrypted_password=vault.encrypt(password),
            jira_id_prefix=jira_id_prefix,
        )

    def get_password(self) -> str:
        if not self.encrypted_password:
            raise ConfigMissingError(["encrypted_password"])
        return vault.decrypt(self.encrypted_password)

    def to_file_dict(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


class SessionState(BaseModel):
    """JIRA session captured after login; held in memory only."""

    cookie_name: str
    cookie_value: str
    xsrf_token: Optional[str] = None

    def headers(self) -> Dict[str, str]:
        out = {"Cookie": f"{self.cookie_name}={self.cookie_value}"}
        if self.xsrf_token:
            out["X-Atlassian-Token"] = self.xsrf_token
        return out
