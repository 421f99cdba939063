"""
Inbound conversation validation.

`validate_conversation` is a pure function: it never raises for bad input and
returns either a typed `ConversationRequest` or a `ValidationFailure` listing
every issue found, so it can be used and tested without the HTTP layer.
"""
from enum import Enum
from typing import Any, List, Sequence

from pydantic import ValidationError

from .schemas import (
    ChatMessage,
    ConversationRequest,
    ValidationFailure,
    ValidationIssue,
    ValidationResult,
)


class ValidationMode(str, Enum):
    # user/assistant only, strict alternation ending on a user turn
    STRICT = "strict"
    # user/assistant/system in any order
    PERMISSIVE = "permissive"


ALLOWED_ROLES = {
    ValidationMode.STRICT: ("user", "assistant"),
    ValidationMode.PERMISSIVE: ("user", "assistant", "system"),
}

PATTERN_MESSAGE = (
    "Messages must alternate between user and assistant roles, "
    "and the last message must be from the user."
)


def _join_path(*parts: Any) -> str:
    return ".".join(str(p) for p in parts)


def _element_issues(index: int, error: ValidationError) -> List[ValidationIssue]:
    return [
        ValidationIssue(
            path=_join_path("messages", index, *err["loc"]),
            message=err["msg"],
            code=err["type"],
        )
        for err in error.errors()
    ]


def follows_alternation(messages: Sequence[ChatMessage]) -> bool:
    """True when roles alternate, the last turn is the user's and the
    first role matches the parity of the conversation length."""
    if messages[-1].role != "user":
        return False

    for previous, current in zip(messages, messages[1:]):
        if previous.role == current.role:
            return False

    expected_first = "user" if len(messages) % 2 == 1 else "assistant"
    return messages[0].role == expected_first


def validate_conversation(payload: Any, mode: ValidationMode) -> ValidationResult:
    if not isinstance(payload, dict) or not isinstance(payload.get("messages"), list):
        return ValidationFailure(
            issues=(
                ValidationIssue(
                    path="messages",
                    message="Expected an object with a 'messages' array",
                    code="invalid_type",
                ),
            )
        )

    raw_messages = payload["messages"]
    if not raw_messages:
        return ValidationFailure(
            issues=(
                ValidationIssue(
                    path="messages",
                    message="Messages array cannot be empty",
                    code="too_small",
                ),
            )
        )

    context = {"roles": ALLOWED_ROLES[mode]}
    messages: List[ChatMessage] = []
    issues: List[ValidationIssue] = []
    for index, raw in enumerate(raw_messages):
        try:
            messages.append(ChatMessage.model_validate(raw, context=context))
        except ValidationError as e:
            issues.extend(_element_issues(index, e))

    if issues:
        return ValidationFailure(issues=tuple(issues))

    if mode is ValidationMode.STRICT and not follows_alternation(messages):
        return ValidationFailure(
            issues=(ValidationIssue(path="messages", message=PATTERN_MESSAGE, code="custom"),)
        )

    return ConversationRequest(messages=tuple(messages))
