"""Permission gate for shell commands requested by AI coding agents.

Public API
----------
- :func:`evaluate`: run the synchronous decision pipeline
- :class:`SecurityReviewer`: optional LLM escalation for ``needs_review``
- :class:`TriageClient`: bounded Anthropic calls with typed results
- :class:`Verdict`, :class:`Decision`, :class:`DecisionSource`: result types
"""

from vibesafu.guard.checkpoint import detect_checkpoint
from vibesafu.guard.instant_block import check_instant_block
from vibesafu.guard.models import (
    Checkpoint,
    CheckpointCategory,
    Decision,
    DecisionSource,
    DomainVerification,
    Severity,
    Signature,
    TriageError,
    TriageFailure,
    TriageResult,
    TriageSuccess,
    Verdict,
)
from vibesafu.guard.pipeline import SHELL_TOOL_NAME, evaluate
from vibesafu.guard.review import SecurityReviewer
from vibesafu.guard.triage import TriageClient
from vibesafu.guard.trusted_domain import verify_domains

__all__ = [
    "SHELL_TOOL_NAME",
    "Checkpoint",
    "CheckpointCategory",
    "Decision",
    "DecisionSource",
    "DomainVerification",
    "SecurityReviewer",
    "Severity",
    "Signature",
    "TriageClient",
    "TriageError",
    "TriageFailure",
    "TriageResult",
    "TriageSuccess",
    "Verdict",
    "check_instant_block",
    "detect_checkpoint",
    "evaluate",
    "verify_domains",
]
