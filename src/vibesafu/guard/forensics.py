"""Forensic logging for gate decisions.

All INFO+ records land in the rotating log file when file logging is enabled.
"""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime

from vibesafu.guard.models import Decision, Verdict
from vibesafu.logging import get_logger

log = get_logger("vibesafu.guard.forensics")


def log_decision(
    *,
    tool_name: str,
    command: str,
    verdict: Verdict,
    session_id: str = "",
    cwd: str = "",
) -> None:
    """Log an audit record for a non-allow verdict (or an allow produced by the LLM)."""
    content_hash = hashlib.sha256(command.encode("utf-8")).hexdigest()
    checkpoint = verdict.checkpoint

    log_method = log.warning if verdict.decision != Decision.ALLOW else log.info
    log_method(
        "security_decision",
        session_id=session_id,
        cwd=cwd,
        tool_name=tool_name,
        timestamp=datetime.now(UTC).isoformat(),
        decision=verdict.decision.value,
        source=verdict.source.value,
        reason=verdict.reason[:500],
        checkpoint=checkpoint.category.value if checkpoint else None,
        matched=checkpoint.matched_text[:100] if checkpoint else None,
        command_hash=content_hash,
        command_length=len(command),
        command_preview=command[:200],
    )
