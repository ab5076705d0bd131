"""Feedback message endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from src.auth.dependencies import AdminUser, CurrentUser
from src.profiles.dependencies import ProfileServiceDep

from .dependencies import MessageServiceDep, handle_message_error
from .schemas import MessageResponse, SendMessageRequest, UnreadCountResponse
from .service import MessageError


router = APIRouter(prefix="/v1/messages", tags=["messages"])
admin_router = APIRouter(prefix="/v1/admin/messages", tags=["admin-messages"])


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send feedback to the administrators",
)
async def send_message(
    data: SendMessageRequest,
    user: CurrentUser,
    message_service: MessageServiceDep,
    profile_service: ProfileServiceDep,
) -> MessageResponse:
    full_name = data.user_full_name
    if not full_name:
        profile = await profile_service.ensure_profile(user)
        full_name = profile.display_name

    try:
        message = await message_service.send_message(user.id, data.content, full_name)
    except MessageError as e:
        raise handle_message_error(e) from e
    return MessageResponse.from_entity(message)


@admin_router.get(
    "",
    response_model=list[MessageResponse],
    summary="List feedback messages (admin only)",
)
async def list_messages(
    admin: AdminUser,
    message_service: MessageServiceDep,
    unread_only: bool = Query(default=False),
    limit: int = Query(default=100, ge=1, le=500),
) -> list[MessageResponse]:
    messages = await message_service.list_messages(limit=limit, unread_only=unread_only)
    return [MessageResponse.from_entity(m) for m in messages]


@admin_router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Count unread feedback messages (admin only)",
)
async def get_unread_count(
    admin: AdminUser,
    message_service: MessageServiceDep,
) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await message_service.get_unread_count())


@admin_router.post(
    "/{message_id}/read",
    response_model=MessageResponse,
    summary="Mark a feedback message read (admin only)",
)
async def mark_message_read(
    message_id: UUID,
    admin: AdminUser,
    message_service: MessageServiceDep,
) -> MessageResponse:
    try:
        message = await message_service.mark_read(message_id)
    except MessageError as e:
        raise handle_message_error(e) from e
    return MessageResponse.from_entity(message)
