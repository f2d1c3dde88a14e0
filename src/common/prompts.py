from __future__ import annotations

import getpass
from typing import Callable, Optional


InputFn = Callable[[str], str]


def prompt_for_input(prompt: str, default: Optional[str] = None, *, input_fn: Optional[InputFn] = None) -> str:
    """Ask for a line of text; an empty answer yields `default` (or "")."""
    read = input_fn or input
    answer = read(f"{prompt} [{default or ''}]: ").strip()
    if not answer:
        return default or ""
    return answer


def prompt_for_password(prompt: str, *, getpass_fn: Optional[InputFn] = None) -> str:
    read = getpass_fn or getpass.getpass
    return read(f"{prompt} ")


def prompt_for_commit_message(*, input_fn: Optional[InputFn] = None) -> str:
    return prompt_for_input("Enter additional commit message", None, input_fn=input_fn)


def confirm_commit(commit_message: str, *, input_fn: Optional[InputFn] = None) -> bool:
    """Show the git command and ask to proceed. Empty answer means yes."""
    print(f'Git commit command: git commit -m "{commit_message}"')
    answer = prompt_for_input("Do you want to proceed? (y/n)", "y", input_fn=input_fn)
    return answer.lower() in ("y", "yes")


__all__ = [
    "prompt_for_input",
    "prompt_for_password",
    "prompt_for_commit_message",
    "confirm_commit",
]
