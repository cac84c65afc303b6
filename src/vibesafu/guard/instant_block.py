"""Instant block: deny commands that match a known-dangerous signature."""

from __future__ import annotations

from vibesafu.guard.models import InstantBlockResult, Signature
from vibesafu.guard.patterns import INSTANT_BLOCK_SIGNATURES


def check_instant_block(
    command: str,
    signatures: tuple[Signature, ...] = INSTANT_BLOCK_SIGNATURES,
) -> InstantBlockResult:
    """Return the first signature in registry order that matches *command*.

    Empty or whitespace-only commands are never blocked.
    """
    if not command or not command.strip():
        return InstantBlockResult(blocked=False)

    for signature in signatures:
        if signature.pattern.search(command):
            return InstantBlockResult(blocked=True, signature=signature)

    return InstantBlockResult(blocked=False)


def format_block_reason(signature: Signature) -> str:
    """Build the operator-facing deny message for a matched signature."""
    reason = (
        f"Blocked [{signature.severity.value}] {signature.name}: {signature.description}. "
        f"Risk: {signature.rationale}."
    )
    if signature.legitimate_uses:
        reason += f" Legitimate uses: {'; '.join(signature.legitimate_uses)}."
    return reason
