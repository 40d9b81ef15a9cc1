"""
Pydantic schemas for the API.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class HealthResponse(BaseModel):
    """Response for the health check endpoint."""

    status: str = Field(default="healthy", description="Health status")
    version: str = Field(..., description="API version")
    model: str = Field(..., description="Model served by the inference engine")
    model_family: str = Field(..., description="Model family (prompt conventions)")
    tools: int = Field(..., description="Number of registered tools")


class ToolInfo(BaseModel):
    name: str
    description: str
    toolset: str
    min_privacy_tier: str
    available: bool
    parameters: dict[str, Any] = Field(default_factory=dict)


class ToolListResponse(BaseModel):
    tools: list[ToolInfo]


class CreateConversationRequest(BaseModel):
    user_id: Optional[str] = Field(default=None, description="Caller identity for tracing")


class TurnModel(BaseModel):
    role: str
    content: str
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


class ConversationResponse(BaseModel):
    conversation_id: str
    turns: list[TurnModel]
    iteration: int = 0
    truncated: bool = False
    busy: bool = False


class MessageRequest(BaseModel):
    """Request body for submitting a user message."""

    content: str = Field(..., min_length=1, description="The user's message")
    include_trace: bool = Field(
        default=False, description="Include the per-iteration tool call trace"
    )

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be blank")
        return v


class TraceToolCall(BaseModel):
    id: str
    name: str
    arguments: dict[str, Any]
    tier: Optional[str] = None
    success: bool
    output: str
    error_kind: Optional[str] = None


class TraceStep(BaseModel):
    iteration: int
    plain_text: str
    tool_calls: list[TraceToolCall] = Field(default_factory=list)


class MessageResponse(BaseModel):
    """Outcome of one submitted user message."""

    conversation_id: str
    state: str = Field(..., description="'done' or 'failed'")
    answer: str = Field(..., description="Final answer, or the last plain text on failure")
    failure_reason: Optional[str] = None
    error: Optional[str] = None
    iterations: int
    tools_used: list[str] = Field(default_factory=list)
    trace: Optional[list[TraceStep]] = None


class CancelResponse(BaseModel):
    conversation_id: str
    cancelled: bool


class ErrorResponse(BaseModel):
    detail: str
