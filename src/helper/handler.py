from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from common.errors import ConfigMissingError, CryptoError, FormatError, HelperError
from common.git import GitOperations
from common.jira import JiraClient, extract_jira_id
from common.prompts import (
    confirm_commit,
    prompt_for_commit_message,
    prompt_for_input,
    prompt_for_password,
)
from state.config_store import ConfigStore
from state.models import AppConfig


logger = logging.getLogger(__name__)

PROG = "jira-git-helper"
DEFAULT_JIRA_ID_PREFIX = "JIRA"

USAGE_NOTES = """\
Normal usage:
  1. Run inside a git repository.
  2. Name your branch with a JIRA issue ID (e.g. 'feature/PROJ-123-add-login').
  3. Run 'jira-git-helper' without arguments; it fetches the issue title,
     asks for an extra note and commits with '[PROJ-123] <title> <note>'.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Automates JIRA-related git commit messages",
        epilog=USAGE_NOTES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-c", "--config", action="store_true", help="Configure JIRA Git Helper settings")
    group.add_argument("-r", "--reset", action="store_true", help="Reset all configurations")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def compose_commit_message(jira_id: str, title: str, note: str) -> str:
    parts = [f"[{jira_id}]", title.strip(), note.strip()]
    return " ".join(p for p in parts if p)


def configure_interactively(store: ConfigStore) -> AppConfig:
    """Prompt for every setting, using values already on disk as defaults."""
    print("Welcome to JIRA Git Helper configuration!")
    try:
        existing = store.read_raw()
    except FormatError as exc:
        logger.warning("Ignoring unreadable config file: %s", exc)
        existing = {}
    # Wrongly typed values (e.g. a number for the URL) are not usable as defaults
    defaults = {k: v for k, v in existing.items() if isinstance(v, str)}

    jira_url = prompt_for_input("Enter your JIRA URL:", defaults.get("jira_url"))
    username = prompt_for_input("Enter your JIRA username:", defaults.get("username"))
    password = prompt_for_password("Enter your JIRA password:")
    jira_id_prefix = prompt_for_input(
        "Enter your JIRA project ID prefix:",
        defaults.get("jira_id_prefix") or DEFAULT_JIRA_ID_PREFIX,
    )

    config = AppConfig.create(jira_url, username, password, jira_id_prefix)
    store.save(config)
    return config


def handle_config(store: ConfigStore) -> int:
    print("Starting JIRA Git Helper configuration...")
    configure_interactively(store)
    print("Configuration updated successfully!")
    print("You can now run the program again to use JIRA Git Helper.")
    return 0


def handle_reset(store: ConfigStore) -> int:
    if store.reset():
        print("All configurations have been reset.")
    else:
        print("No configuration found; nothing to reset.")
    return 0


def run_once(store: ConfigStore, git: GitOperations) -> int:
    try:
        config = store.load()
    except ConfigMissingError as exc:
        logger.debug("%s", exc)
        print("Configuration is missing or incomplete. Let's set it up!")
        return handle_config(store)

    branch = git.current_branch()
    jira_id = extract_jira_id(branch, config.jira_id_prefix)
    if jira_id is None:
        print(
            f"No JIRA ID with prefix '{config.jira_id_prefix}' found in branch '{branch}'.",
            file=sys.stderr,
        )
        return 1
    logger.info("Branch %s -> %s", branch, jira_id)

    try:
        with JiraClient(config) as jira:
            title = jira.get_issue_title(jira_id)
    except (CryptoError, FormatError) as exc:
        # Only the stored password blob can fail this way here
        print(f"Error: {exc}", file=sys.stderr)
        print(
            f"The stored password could not be recovered; run '{PROG} --config' to reconfigure.",
            file=sys.stderr,
        )
        return 1

    note = prompt_for_commit_message()
    message = compose_commit_message(jira_id, title, note)
    if not confirm_commit(message):
        print("Commit cancelled.")
        return 0

    git.commit(message)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args_in = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()
    if "/?" in args_in:
        parser.print_help()
        return 0
    args = parser.parse_args(args_in)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = ConfigStore.from_env()
    try:
        if args.reset:
            return handle_reset(store)
        if args.config:
            return handle_config(store)
        return run_once(store, GitOperations())
    except HelperError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nAborted.", file=sys.stderr)
        return 130


__all__ = ["main", "run_once", "compose_commit_message", "configure_interactively", "build_parser"]
