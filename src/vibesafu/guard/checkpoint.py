"""Checkpoint detection: recognise sensitive operations that need review.

Rules are evaluated in table order and the first match wins, so a command
that touches several categories is reported under the highest-priority one:
script execution, network, package install, secret file writes, git remote
operations, then system modification.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from vibesafu.guard.models import Checkpoint, CheckpointCategory

_FETCH = r"(?:curl|wget|aria2c|Invoke-WebRequest|Invoke-RestMethod|iwr|irm)"
_INTERPRETER = (
    r"(?:bash|sh|zsh|dash|ksh|fish|python[0-9.]*|perl|ruby|node|deno|bun|php"
    r"|iex|Invoke-Expression|pwsh|powershell)"
)
_SECRET_FILE = (
    r"(?:[^\s\"';&|<>]*/)?"
    r"(?:\.env(?:\.[\w.-]+)?|\.envrc|\.npmrc|\.pypirc|\.netrc|\.git-credentials"
    r"|\.aws/credentials|\.ssh/[\w.-]+|secrets?\.(?:json|ya?ml|toml|env)|credentials\.json)"
)
_STARTUP_FILE = r"(?:[^\s\"';&|<>]*/)?\.(?:bashrc|bash_profile|zshrc|zshenv|zprofile|profile)\b"
_END = r"[\"']?(?=$|[\s;&|)])"
_LAST_ARG_END = r"[\"']?\s*(?=$|[;&|)])"


@dataclass(frozen=True)
class CheckpointRule:
    category: CheckpointCategory
    description: str
    pattern: re.Pattern[str]


# Network access that does not go through a fetch tool's URL argument
REMOTE_ACCESS_RULES: tuple[CheckpointRule, ...] = (
    CheckpointRule(
        CheckpointCategory.NETWORK,
        "Opens a connection or transfers files to a remote host",
        re.compile(
            r"\b(?:scp|sftp|ftp|telnet|nc|ncat|netcat)\b"
            r"|\bssh\s+"
            r"|\brsync\b[^\n]*(?:\s(?:[\w.-]+@)?[\w-]+(?:\.[\w-]+)*:|rsync://)"
        ),
    ),
    CheckpointRule(
        CheckpointCategory.NETWORK,
        "Runs an HTTP request from a script one-liner",
        re.compile(
            r"\bhttp(?:ie)?\s+(?:GET|POST|PUT|PATCH|DELETE|get|post|put|patch|delete)\b"
            r"|\bpython[0-9.]*\s+-c\s+[^\n]*\b(?:requests|urllib|httpx|http\.client)\b"
        ),
    ),
)

CHECKPOINT_RULES: tuple[CheckpointRule, ...] = (
    # --- Script execution ---
    CheckpointRule(
        CheckpointCategory.SCRIPT_EXECUTION,
        "Downloaded content is piped straight into an interpreter",
        re.compile(
            rf"\b{_FETCH}\b[^\n]*?\|\s*(?:sudo\s+(?:-\S+\s+)*)?(?:env\s+(?:\w+=\S*\s+)*)?"
            rf"{_INTERPRETER}\b"
        ),
    ),
    CheckpointRule(
        CheckpointCategory.SCRIPT_EXECUTION,
        "Downloaded content is executed through process or command substitution",
        re.compile(
            rf"\b(?:{_INTERPRETER}|source)\b[^\n]*<\(\s*{_FETCH}\b"
            rf"|\b(?:{_INTERPRETER}\s+-c|eval)\s+[\"']?(?:\$\(|`)\s*{_FETCH}\b"
        ),
    ),
    CheckpointRule(
        CheckpointCategory.SCRIPT_EXECUTION,
        "A file is downloaded and then executed",
        re.compile(
            rf"\b{_FETCH}\b[^\n]*(?:&&|;)\s*(?:sudo\s+)?"
            rf"(?:{_INTERPRETER}\s+\S+|chmod\s+(?:\+|u\+|a\+)?x\b|\./\S+)"
        ),
    ),
    # --- Network ---
    CheckpointRule(
        CheckpointCategory.NETWORK,
        "Fetches or sends data over the network",
        re.compile(rf"\b{_FETCH}\b"),
    ),
    *REMOTE_ACCESS_RULES,
    # --- Package installs ---
    CheckpointRule(
        CheckpointCategory.PACKAGE_INSTALL,
        "Installs third-party packages that can run code at install time",
        re.compile(
            r"\b(?:npm|pnpm|yarn|bun|pip[0-9.]*|pipx|uv\s+pip|uv\s+tool|uv|poetry|cargo|gem|go"
            r"|brew|apt(?:-get)?|yum|dnf|apk|composer)"
            r"\s+(?:global\s+)?(?:install|i|add|get)\s+(?:-{1,2}[\w-]+\s+)*"
            r"(?!-|\.{1,2}/?(?=\s|$))[^\s;&|]+"
        ),
    ),
    # --- Secret file writes ---
    CheckpointRule(
        CheckpointCategory.ENV_MODIFICATION,
        "Writes to a file that holds secrets",
        re.compile(
            rf">{{1,2}}\s*[\"']?{_SECRET_FILE}{_END}"
            rf"|\btee\s+(?:-\S+\s+)*[\"']?{_SECRET_FILE}{_END}"
            rf"|\bdd\b[^\n;&|]*\bof={_SECRET_FILE}{_END}"
        ),
    ),
    CheckpointRule(
        CheckpointCategory.ENV_MODIFICATION,
        "Edits a file that holds secrets in place",
        re.compile(rf"\b(?:sed|perl)\s+[^\n;&|]*-i[^\n;&|]*\s[\"']?{_SECRET_FILE}{_END}"),
    ),
    CheckpointRule(
        CheckpointCategory.ENV_MODIFICATION,
        "Replaces a file that holds secrets",
        re.compile(
            rf"\b(?:cp|mv|install|ln)\s+[^\n;&|]*\s[\"']?{_SECRET_FILE}{_LAST_ARG_END}"
        ),
    ),
    # --- Git remote state ---
    CheckpointRule(
        CheckpointCategory.GIT_OPERATION,
        "Force-pushes and may overwrite remote history",
        re.compile(
            r"\bgit\s+(?:-[cC]\s+\S+\s+|--[\w-]+(?:=\S+)?\s+)*push\b[^\n;&|]*"
            r"(?:\s--force(?:-with-lease)?\b|\s-[a-zA-Z]*f[a-zA-Z]*\b|\s\+\S)"
        ),
    ),
    CheckpointRule(
        CheckpointCategory.GIT_OPERATION,
        "Pushes local commits to a remote repository",
        re.compile(r"\bgit\s+(?:-[cC]\s+\S+\s+|--[\w-]+(?:=\S+)?\s+)*push\b"),
    ),
    CheckpointRule(
        CheckpointCategory.GIT_OPERATION,
        "Changes where the repository pushes and pulls from",
        re.compile(
            r"\bgit\s+(?:-[cC]\s+\S+\s+|--[\w-]+(?:=\S+)?\s+)*"
            r"remote\s+(?:add|set-url|remove|rm|rename)\b"
        ),
    ),
    # --- System modification ---
    CheckpointRule(
        CheckpointCategory.SYSTEM_MODIFICATION,
        "Runs a command with elevated privileges",
        re.compile(r"\b(?:sudo|doas)\s|(?:^|[;&|]\s*)su(?:\s+-|\s+root\b|\s*$)"),
    ),
    CheckpointRule(
        CheckpointCategory.SYSTEM_MODIFICATION,
        "Installs a persistent job or service",
        re.compile(
            r"\bcrontab\b|\bsystemctl\s+(?:enable|mask)\b|\blaunchctl\s+(?:load|bootstrap)\b"
        ),
    ),
    CheckpointRule(
        CheckpointCategory.SYSTEM_MODIFICATION,
        "Modifies a shell start-up file",
        re.compile(rf"(?:>{{1,2}}|\btee\s+(?:-\S+\s+)*)\s*[\"']?{_STARTUP_FILE}"),
    ),
)


def detect_checkpoint(
    command: str,
    rules: tuple[CheckpointRule, ...] = CHECKPOINT_RULES,
) -> Checkpoint | None:
    """Classify *command* into at most one sensitive-operation checkpoint.

    Returns ``None`` when no rule matches.
    """
    if not command or not command.strip():
        return None

    for rule in rules:
        match = rule.pattern.search(command)
        if match:
            return Checkpoint(
                category=rule.category,
                description=rule.description,
                command=command,
                matched_text=match.group(0).strip(),
            )
    return None
