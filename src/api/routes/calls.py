"""Phone call API routes."""

from fastapi import APIRouter, status

from src.api.deps import CallServiceDep, CurrentUser
from src.schemas.call import (
    CallCreate,
    CallResponse,
    CallUpdate,
    SuggestionRecordResponse,
    TranscriptCreate,
)

router = APIRouter(prefix="/calls", tags=["calls"])


@router.post(
    "",
    response_model=CallResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a call",
)
async def create_call(data: CallCreate, user: CurrentUser, service: CallServiceDep) -> CallResponse:
    call = await service.create_call(data, user.company_id, user.user_id)
    return CallResponse.model_validate(call)


@router.get(
    "/active",
    response_model=list[CallResponse],
    summary="List active calls",
    description="Calls of the caller's company that are initiated, ringing or in progress.",
)
async def list_active_calls(user: CurrentUser, service: CallServiceDep) -> list[CallResponse]:
    calls = await service.list_active_calls(user.company_id)
    return [CallResponse.model_validate(call) for call in calls]


@router.get("/{call_id}", response_model=CallResponse, summary="Get a call")
async def get_call(call_id: str, user: CurrentUser, service: CallServiceDep) -> CallResponse:
    call = await service.get_call(call_id, user.company_id)
    return CallResponse.model_validate(call)


@router.put(
    "/{call_id}",
    response_model=CallResponse,
    summary="Update a call",
    description="Partial update. A status change is pushed to the agent as call:status.",
)
async def update_call(
    call_id: str,
    data: CallUpdate,
    user: CurrentUser,
    service: CallServiceDep,
) -> CallResponse:
    call = await service.update_call(call_id, data, user.company_id)
    return CallResponse.model_validate(call)


@router.post(
    "/{call_id}/transcript",
    response_model=CallResponse,
    summary="Append a transcript line",
    description="Customer lines trigger a live AI suggestion delivered over the socket.",
)
async def add_transcript(
    call_id: str,
    data: TranscriptCreate,
    user: CurrentUser,
    service: CallServiceDep,
) -> CallResponse:
    call = await service.add_transcript(call_id, data, user.company_id)
    return CallResponse.model_validate(call)


@router.post("/{call_id}/complete", response_model=CallResponse, summary="Complete a call")
async def complete_call(call_id: str, user: CurrentUser, service: CallServiceDep) -> CallResponse:
    call = await service.complete_call(call_id, user.company_id)
    return CallResponse.model_validate(call)


@router.get(
    "/{call_id}/suggestions",
    response_model=list[SuggestionRecordResponse],
    summary="List suggestions of a call",
)
async def get_call_suggestions(
    call_id: str,
    user: CurrentUser,
    service: CallServiceDep,
) -> list[SuggestionRecordResponse]:
    rows = await service.get_suggestions(call_id, user.company_id)
    return [SuggestionRecordResponse.model_validate(row) for row in rows]
