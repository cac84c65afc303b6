"""PermissionRequest hook boundary.

Reads one request as JSON, runs the decision pipeline (plus the optional LLM
review) and produces the hook response.  Every failure path at this boundary
resolves to a ``deny`` response; the hook never crashes and never allows by
default.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vibesafu.config import Settings, get_settings
from vibesafu.guard.forensics import log_decision
from vibesafu.guard.models import Decision, DecisionSource, Verdict
from vibesafu.guard.pipeline import SHELL_TOOL_NAME, evaluate
from vibesafu.guard.review import SecurityReviewer
from vibesafu.guard.triage import TriageClient
from vibesafu.logging import get_logger

log = get_logger("vibesafu.hook")

HOOK_EVENT_NAME = "PermissionRequest"


class PermissionRequest(BaseModel):
    """Request sent by the host on stdin."""

    model_config = ConfigDict(extra="ignore")

    session_id: str = ""
    transcript_path: str = ""
    cwd: str = ""
    permission_mode: str = ""
    hook_event_name: str = HOOK_EVENT_NAME
    tool_name: str
    tool_input: Any = Field(default_factory=dict)

    @property
    def command(self) -> str | None:
        """The shell command, when the tool input carries one as a string."""
        if isinstance(self.tool_input, dict) and isinstance(self.tool_input.get("command"), str):
            return self.tool_input["command"]
        return None


class HookDecision(BaseModel):
    behavior: Literal["allow", "deny"]
    message: str | None = None


class HookSpecificOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hook_event_name: str = Field(default=HOOK_EVENT_NAME, alias="hookEventName")
    decision: HookDecision


class HookOutput(BaseModel):
    """Response written to stdout."""

    model_config = ConfigDict(populate_by_name=True)

    hook_specific_output: HookSpecificOutput = Field(alias="hookSpecificOutput")


def create_hook_output(
    behavior: Literal["allow", "deny"], message: str | None = None
) -> dict[str, Any]:
    """Build the JSON-ready hook response."""
    output = HookOutput(
        hook_specific_output=HookSpecificOutput(
            decision=HookDecision(behavior=behavior, message=message),
        )
    )
    return output.model_dump(by_alias=True, exclude_none=True)


def verdict_to_output(verdict: Verdict) -> dict[str, Any]:
    """Map a verdict onto the two behaviours the host understands."""
    if verdict.decision == Decision.ALLOW:
        return create_hook_output("allow")
    if verdict.decision == Decision.DENY:
        return create_hook_output("deny", verdict.reason)
    # Unresolved review: deny with an explanation
    return create_hook_output(
        "deny",
        f"Security review required: {verdict.reason}. "
        "Configure an API key with 'vibesafu config' to enable LLM analysis.",
    )


def _malformed(message: str) -> Verdict:
    return Verdict(
        decision=Decision.DENY,
        reason=message,
        source=DecisionSource.MALFORMED_REQUEST,
    )


def parse_request(raw_input: str) -> PermissionRequest | Verdict:
    """Parse stdin text into a request, or a DENY verdict explaining why not."""
    try:
        payload = json.loads(raw_input)
    except (json.JSONDecodeError, TypeError):
        return _malformed("Invalid JSON input")

    try:
        request = PermissionRequest.model_validate(payload)
    except ValidationError as e:
        return _malformed(f"Malformed PermissionRequest: {e.error_count()} validation error(s)")

    if request.tool_name == SHELL_TOOL_NAME and request.command is None:
        return _malformed(f"Malformed PermissionRequest: {SHELL_TOOL_NAME} input has no command")

    return request


async def process_permission_request(
    request: PermissionRequest,
    *,
    reviewer: SecurityReviewer | None = None,
) -> Verdict:
    """Run the pipeline for *request*, escalating ``needs_review`` to *reviewer*."""
    command = (request.command or "") if request.tool_name == SHELL_TOOL_NAME else ""
    verdict = evaluate(request.tool_name, command)

    if verdict.decision == Decision.NEEDS_REVIEW and reviewer is not None:
        verdict = await reviewer.review(verdict, cwd=request.cwd)

    if verdict.decision != Decision.ALLOW or verdict.source in (
        DecisionSource.TRIAGE,
        DecisionSource.REVIEW,
    ):
        log_decision(
            tool_name=request.tool_name,
            command=command,
            verdict=verdict,
            session_id=request.session_id,
            cwd=request.cwd,
        )
    return verdict


async def run_hook(
    raw_input: str,
    *,
    settings: Settings | None = None,
    triage_client: TriageClient | None = None,
) -> dict[str, Any]:
    """Process one raw hook request and return the response object.

    A :class:`TriageClient` is created from the configured API key when none
    is supplied; without a key, ``needs_review`` verdicts become denies.
    """
    try:
        parsed = parse_request(raw_input)
        if isinstance(parsed, Verdict):
            log.warning("malformed_request", reason=parsed.reason, input_length=len(raw_input))
            return verdict_to_output(parsed)

        settings = settings or get_settings()
        owns_client = False
        if triage_client is None and settings.triage_enabled and settings.has_api_key:
            assert settings.anthropic_api_key is not None  # noqa: S101
            triage_client = TriageClient(settings.anthropic_api_key.get_secret_value())
            owns_client = True

        reviewer = (
            SecurityReviewer(triage_client, settings)
            if triage_client is not None and settings.triage_enabled
            else None
        )
        try:
            verdict = await process_permission_request(parsed, reviewer=reviewer)
        finally:
            if owns_client and triage_client is not None:
                await triage_client.close()

        return verdict_to_output(verdict)
    except Exception as e:
        log.error("hook_processing_failed", error=str(e), error_type=type(e).__name__)
        return create_hook_output("deny", f"vibesafu internal error, denying for safety: {e}")
