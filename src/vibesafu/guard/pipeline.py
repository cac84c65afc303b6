"""Decision pipeline for shell permission requests.

Instant block -> checkpoint detection -> trusted domains -> needs review.

The pipeline is synchronous and pure: the verdict depends only on the tool
name, the command text and the static registries.  Escalating a
``needs_review`` verdict to the LLM is done by
:class:`vibesafu.guard.review.SecurityReviewer`, outside this module.
"""

from __future__ import annotations

from vibesafu.guard.checkpoint import detect_checkpoint
from vibesafu.guard.instant_block import check_instant_block, format_block_reason
from vibesafu.guard.models import (
    DOMAIN_TRUST_CATEGORIES,
    Decision,
    DecisionSource,
    Verdict,
)
from vibesafu.guard.trusted_domain import verify_domains

SHELL_TOOL_NAME = "Bash"


def evaluate(tool_name: str, command: str) -> Verdict:
    """Evaluate one permission request.

    Args:
        tool_name: Name of the tool the agent wants to use.
        command: The shell command text (ignored for non-shell tools).

    Returns:
        A :class:`Verdict`; never raises.
    """
    # ---- Only shell commands are analysed ----
    if tool_name != SHELL_TOOL_NAME:
        return Verdict(
            decision=Decision.ALLOW,
            reason=f"Tool {tool_name} is not {SHELL_TOOL_NAME}, allowing",
            source=DecisionSource.NON_TARGET_TOOL,
        )

    command = command or ""

    # ---- Instant block ----
    block = check_instant_block(command)
    if block.blocked and block.signature is not None:
        return Verdict(
            decision=Decision.DENY,
            reason=format_block_reason(block.signature),
            source=DecisionSource.INSTANT_BLOCK,
        )

    # ---- Checkpoint ----
    checkpoint = detect_checkpoint(command)
    if checkpoint is None:
        return Verdict(
            decision=Decision.ALLOW,
            reason="No security checkpoint triggered",
            source=DecisionSource.NO_CHECKPOINT,
        )

    reason = f"Checkpoint triggered: {checkpoint.category.value} - {checkpoint.description}"

    # ---- Trusted domains (script execution and network only) ----
    if checkpoint.category in DOMAIN_TRUST_CATEGORIES:
        domains = verify_domains(command)
        if domains.all_trusted:
            return Verdict(
                decision=Decision.ALLOW,
                reason=f"All URLs from trusted domains: {', '.join(domains.trusted_urls)}",
                source=DecisionSource.TRUSTED_DOMAIN,
                checkpoint=checkpoint,
            )
        if domains.untrusted_urls:
            reason += f" (untrusted URLs: {', '.join(domains.untrusted_urls)})"
        if domains.unverified_endpoints:
            reason += (
                f" (unverified network access: {', '.join(domains.unverified_endpoints)})"
            )

    return Verdict(
        decision=Decision.NEEDS_REVIEW,
        reason=reason,
        source=DecisionSource.CHECKPOINT,
        checkpoint=checkpoint,
    )
