"""
Common building blocks for jira-git-helper.

Modules:
- errors: exception hierarchy shared by all components
- vault: AES-256-GCM encryption of the stored password
- jira: JIRA REST client with session re-authentication, issue ID extraction
- git: git subprocess wrapper
- prompts: interactive terminal input
"""

__all__ = [
    "errors",
    "vault",
    "jira",
    "git",
    "prompts",
]
