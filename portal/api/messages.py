"""
Member messaging endpoints and the chairman broadcast
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import get_current_user, require_admin_role
from portal.db.session import get_db
from portal.models.enums import BroadcastTarget
from portal.models.profile import Profile
from portal.services import messaging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])

FOLDER_LISTINGS = {
    "inbox": messaging.list_inbox,
    "sent": messaging.list_sent,
    "trash": messaging.list_trash,
}


class SupportMessageRequest(CamelModel):
    subject: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1)


class RecipientActionRequest(CamelModel):
    recipient_id: UUID


class BroadcastRequest(CamelModel):
    target: BroadcastTarget
    subject: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1)
    country_code: Optional[str] = None
    selected_user_ids: Optional[List[UUID]] = None


def _raise_for_result(result: dict, not_found_status: int = status.HTTP_404_NOT_FOUND) -> None:
    if result.get("success"):
        return
    error = result.get("error") or "Request failed"
    code = not_found_status if error == "Recipient not found" else status.HTTP_400_BAD_REQUEST
    raise HTTPException(status_code=code, detail={"error": error})


@router.get("/api/messages/inbox")
async def list_messages(
    folder: str = "inbox",
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    listing = FOLDER_LISTINGS.get(folder.lower())
    if listing is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Folder must be inbox, sent or trash"}
        )
    try:
        recipients = await listing(db, current_user.id)
        return {"success": True, "messages": [r.to_dict() for r in recipients]}
    except Exception as e:
        logger.error(f"Failed to list {folder} for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list messages: {str(e)}"}
        )


@router.get("/api/messages/unread-count")
async def unread_count(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return {"success": True, "count": await messaging.get_unread_count(db, current_user.id)}
    except Exception as e:
        logger.error(f"Failed to count unread messages for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to count unread messages: {str(e)}"}
        )


@router.get("/api/messages/unread-preview")
async def unread_preview(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return {"success": True, "messages": await messaging.get_unread_preview(db, current_user.id)}
    except Exception as e:
        logger.error(f"Failed to build unread preview for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to load unread messages: {str(e)}"}
        )


@router.post("/api/messages/read")
async def read_message(
    payload: RecipientActionRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        _raise_for_result(await messaging.mark_as_read(db, current_user.id, payload.recipient_id))
        await db.commit()
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to mark message {payload.recipient_id} read: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to mark message as read: {str(e)}"}
        )


@router.post("/api/messages/trash")
async def trash_message(
    payload: RecipientActionRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        _raise_for_result(await messaging.move_to_trash(db, current_user.id, payload.recipient_id))
        await db.commit()
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to trash message {payload.recipient_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to move message to trash: {str(e)}"}
        )


@router.post("/api/messages/delete")
async def delete_message(
    payload: RecipientActionRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        _raise_for_result(await messaging.delete_forever(db, current_user.id, payload.recipient_id))
        await db.commit()
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to delete message {payload.recipient_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to delete message: {str(e)}"}
        )


@router.post("/api/messages/mark-all-read")
async def mark_all_read(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        updated = await messaging.mark_all_as_read(db, current_user.id)
        await db.commit()
        return {"success": True, "updatedCount": updated}
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to mark all messages read for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to mark messages as read: {str(e)}"}
        )


@router.post("/api/messages/support", status_code=status.HTTP_201_CREATED)
async def send_support(
    payload: SupportMessageRequest,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await messaging.send_support_message(db, current_user.id, payload.subject, payload.body)
        await db.commit()
        _raise_for_result(result)
        return {"success": True, "messageId": result["message_id"]}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to send support message from {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to send support message: {str(e)}"}
        )


@router.post("/api/admin/messages/broadcast", status_code=status.HTTP_201_CREATED)
async def broadcast(
    payload: BroadcastRequest,
    current_admin: Profile = Depends(require_admin_role),
    db: AsyncSession = Depends(get_db)
):
    """Broadcast to a target group; the chairman is the only sender."""
    try:
        result = await messaging.send_broadcast_message(
            db,
            current_admin.id,
            payload.target.value,
            payload.subject,
            payload.body,
            country_code=payload.country_code,
            selected_user_ids=payload.selected_user_ids
        )
        if not result["success"] and result["error"] == "Only Chairman can send broadcast messages":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"error": result["error"]}
            )
        await db.commit()
        _raise_for_result(result)
        return {"success": True, "messageId": result["message_id"], "recipientCount": result["recipient_count"]}
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to send broadcast: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to send broadcast: {str(e)}"}
        )
