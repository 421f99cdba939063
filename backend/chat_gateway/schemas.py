from datetime import datetime
from typing import List, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

ROLES = ("user", "assistant", "system")


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    content: str

    @field_validator("role")
    @classmethod
    def role_allowed(cls, value: str, info: ValidationInfo) -> str:
        # the active validation mode narrows the role set through the context
        allowed = (info.context or {}).get("roles", ROLES)
        if value not in allowed:
            raise PydanticCustomError(
                "invalid_enum_value",
                "Invalid role '{role}', expected one of: {expected}",
                {"role": value, "expected": ", ".join(allowed)},
            )
        return value

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("too_small", "Message content cannot be empty")
        return value


class ConversationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    messages: Tuple[ChatMessage, ...]

    def as_dicts(self) -> List[dict]:
        return [m.model_dump() for m in self.messages]


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    message: str
    code: str


class ValidationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    issues: Tuple[ValidationIssue, ...]


ValidationResult = Union[ConversationRequest, ValidationFailure]


class ErrorResponse(BaseModel):
    error: str
    message: str


class ValidationErrorResponse(BaseModel):
    error: str = "Validation Error"
    details: List[ValidationIssue]


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
