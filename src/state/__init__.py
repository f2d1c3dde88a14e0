"""
Configuration models and the on-disk store for jira-git-helper.

The password is kept as a vault blob (see `common.vault`); the JIRA session
lives only in memory on the client.
"""

from .models import AppConfig, SessionState

__all__ = ["AppConfig", "SessionState"]
