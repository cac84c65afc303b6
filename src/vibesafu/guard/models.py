"""Data models for the permission gate."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Severity(StrEnum):
    """How dangerous an instant-block signature is."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


class CheckpointCategory(StrEnum):
    """Categories of sensitive operations that need a second look."""

    SCRIPT_EXECUTION = "script_execution"
    NETWORK = "network"
    PACKAGE_INSTALL = "package_install"
    ENV_MODIFICATION = "env_modification"
    GIT_OPERATION = "git_operation"
    SYSTEM_MODIFICATION = "system_modification"


# Only these categories may be downgraded to ALLOW by trusted domains
DOMAIN_TRUST_CATEGORIES = frozenset(
    {CheckpointCategory.SCRIPT_EXECUTION, CheckpointCategory.NETWORK}
)


class Decision(StrEnum):
    """Outcome of the gate."""

    ALLOW = "allow"
    DENY = "deny"
    NEEDS_REVIEW = "needs_review"


class DecisionSource(StrEnum):
    """Which stage of the pipeline produced a verdict."""

    INSTANT_BLOCK = "instant_block"
    TRUSTED_DOMAIN = "trusted_domain"
    NO_CHECKPOINT = "no_checkpoint"
    CHECKPOINT = "checkpoint"
    NON_TARGET_TOOL = "non_target_tool"
    TRIAGE = "triage"
    REVIEW = "review"
    MALFORMED_REQUEST = "malformed_request"


class TriageError(StrEnum):
    """Failure modes of a triage call."""

    EMPTY_RESPONSE = "empty_response"
    PARSE_ERROR = "parse_error"
    TIMEOUT = "timeout"
    API_ERROR = "api_error"


@dataclass(frozen=True)
class Signature:
    """A dangerous command signature in the instant-block registry."""

    name: str
    pattern: re.Pattern[str]
    severity: Severity
    description: str
    rationale: str
    legitimate_uses: tuple[str, ...] = ()


@dataclass(frozen=True)
class InstantBlockResult:
    blocked: bool
    signature: Signature | None = None


@dataclass(frozen=True)
class Checkpoint:
    """A sensitive operation detected in a command."""

    category: CheckpointCategory
    description: str
    command: str
    matched_text: str


@dataclass(frozen=True)
class DomainVerification:
    """Network endpoints found in a command, split by trust.

    ``extracted_urls`` holds URLs and fetch-tool targets (with or without a
    scheme).  ``unverified_endpoints`` holds remote access whose host cannot be
    checked against the allowlist (ssh, scp, rsync, netcat, ...).
    """

    extracted_urls: tuple[str, ...] = ()
    trusted_urls: tuple[str, ...] = ()
    untrusted_urls: tuple[str, ...] = ()
    unverified_endpoints: tuple[str, ...] = ()

    @property
    def all_trusted(self) -> bool:
        return (
            bool(self.extracted_urls)
            and not self.untrusted_urls
            and not self.unverified_endpoints
        )


@dataclass(frozen=True)
class Verdict:
    """The final decision for one permission request."""

    decision: Decision
    reason: str
    source: DecisionSource
    checkpoint: Checkpoint | None = None


@dataclass(frozen=True)
class TriageSuccess:
    """A triage call that returned a JSON object."""

    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TriageFailure:
    """A triage call that did not produce usable data."""

    error: TriageError
    message: str


TriageResult = TriageSuccess | TriageFailure
