"""
Conversation endpoints.

Each user message is a single submit-and-await call; messages posted
concurrently to the same conversation are processed one after another.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ...orchestration import ConversationSession
from ...prompts import build_tool_definition
from ...runtime import AgentRuntime
from ..schemas import (
    CancelResponse,
    ConversationResponse,
    CreateConversationRequest,
    ErrorResponse,
    MessageRequest,
    MessageResponse,
    ToolInfo,
    ToolListResponse,
    TraceStep,
    TurnModel,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_runtime(request: Request) -> AgentRuntime:
    return request.app.state.runtime


def _session_or_404(runtime: AgentRuntime, conversation_id: str) -> ConversationSession:
    try:
        return runtime.get_session(conversation_id)
    except KeyError:
        raise HTTPException(
            status_code=404, detail=f"Conversation '{conversation_id}' not found"
        ) from None


def _conversation_response(session: ConversationSession) -> ConversationResponse:
    conversation = session.conversation
    return ConversationResponse(
        conversation_id=session.conversation_id,
        turns=[TurnModel(**turn.to_dict()) for turn in conversation.turns],
        iteration=conversation.iteration,
        truncated=conversation.truncated,
        busy=session.busy,
    )


@router.get(
    "/v1/tools",
    response_model=ToolListResponse,
    summary="List tools",
    description="List registered tools with their argument schema and privacy floor.",
)
async def list_tools(runtime: AgentRuntime = Depends(get_runtime)) -> ToolListResponse:
    return ToolListResponse(
        tools=[
            ToolInfo(
                name=tool.name,
                description=tool.description,
                toolset=tool.toolset,
                min_privacy_tier=tool.min_privacy_tier.name,
                available=tool.available(),
                parameters=build_tool_definition(tool)["function"]["parameters"],
            )
            for tool in runtime.registry.all_tools()
        ]
    )


@router.post(
    "/v1/conversations",
    response_model=ConversationResponse,
    status_code=201,
    summary="Start a conversation",
)
async def create_conversation(
    request: Optional[CreateConversationRequest] = None,
    runtime: AgentRuntime = Depends(get_runtime),
) -> ConversationResponse:
    user_id = request.user_id if request else None
    session = runtime.create_session(user_id=user_id)
    return _conversation_response(session)


@router.get(
    "/v1/conversations/{conversation_id}",
    response_model=ConversationResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a conversation",
)
async def get_conversation(
    conversation_id: str,
    runtime: AgentRuntime = Depends(get_runtime),
) -> ConversationResponse:
    return _conversation_response(_session_or_404(runtime, conversation_id))


@router.post(
    "/v1/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Send a message",
    description="Submit a user message and wait for the agent's outcome.",
)
async def send_message(
    conversation_id: str,
    request: MessageRequest,
    runtime: AgentRuntime = Depends(get_runtime),
) -> MessageResponse:
    session = _session_or_404(runtime, conversation_id)
    logger.info("[%s] Message received (%d chars)", conversation_id, len(request.content))

    outcome = await session.submit(request.content)

    trace = None
    if request.include_trace:
        trace = [TraceStep(**step) for step in outcome.get_trace()]
    return MessageResponse(
        conversation_id=conversation_id,
        state=outcome.state.value,
        answer=outcome.answer,
        failure_reason=outcome.failure_reason,
        error=outcome.error,
        iterations=outcome.iterations,
        tools_used=outcome.tools_used(),
        trace=trace,
    )


@router.post(
    "/v1/conversations/{conversation_id}/cancel",
    response_model=CancelResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Cancel the in-flight message",
)
async def cancel_message(
    conversation_id: str,
    runtime: AgentRuntime = Depends(get_runtime),
) -> CancelResponse:
    session = _session_or_404(runtime, conversation_id)
    return CancelResponse(conversation_id=conversation_id, cancelled=session.cancel())


@router.delete(
    "/v1/conversations/{conversation_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a conversation",
)
async def delete_conversation(
    conversation_id: str,
    runtime: AgentRuntime = Depends(get_runtime),
) -> None:
    if not runtime.delete_session(conversation_id):
        raise HTTPException(
            status_code=404, detail=f"Conversation '{conversation_id}' not found"
        )
