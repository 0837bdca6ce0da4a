"""
Internal messaging.

A message is one ``messages`` row fanned out to ``message_recipients`` rows:
recipients get an unread INBOX row, the sender a read SENT row. The message
insert and the recipient inserts are separate flushes; a failed recipient
insert is logged and reported, it does not undo the message row.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.timeutils import utcnow
from portal.models.enums import (
    BroadcastTarget, MessageFolder, MessageType, ProfileRole, SenderRole,
)
from portal.models.message import Message, MessageRecipient
from portal.models.profile import Profile
from portal.services import permissions

logger = logging.getLogger(__name__)

SUPPORT_RECIPIENT_ROLES = (ProfileRole.SUPER_ADMIN.value, ProfileRole.MANAGER_ADMIN.value)
PREVIEW_LIMIT = 5
PREVIEW_BODY_LENGTH = 80

WELCOME_SUBJECT = "Welcome to MigrateSafely: Your Membership is Active ✅"


async def _create_message(
    session: AsyncSession,
    sender_id: Optional[UUID],
    sender_role: str,
    message_type: str,
    subject: str,
    body: str,
    broadcast_target: Optional[str] = None,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[str] = None
) -> Message:
    message = Message(
        sender_user_id=sender_id,
        sender_role=sender_role,
        message_type=message_type,
        subject=subject,
        body=body,
        broadcast_target=broadcast_target,
        related_entity_type=related_entity_type,
        related_entity_id=str(related_entity_id) if related_entity_id else None
    )
    session.add(message)
    await session.flush()
    return message


async def _add_recipients(
    session: AsyncSession,
    message_id: UUID,
    recipient_ids: Iterable[UUID],
    folder: str = MessageFolder.INBOX.value,
    is_read: bool = False
) -> int:
    count = 0
    now = utcnow()
    for recipient_id in recipient_ids:
        session.add(MessageRecipient(
            message_id=message_id,
            recipient_user_id=recipient_id,
            folder=folder,
            is_read=is_read,
            read_at=now if is_read else None
        ))
        count += 1
    await session.flush()
    return count


async def _deliver(
    session: AsyncSession,
    message: Message,
    recipient_ids: List[UUID],
    sender_id: Optional[UUID],
    failure_text: str
) -> Dict[str, Any]:
    # savepoints keep the message row and the session alive when a recipient insert fails
    try:
        async with session.begin_nested():
            await _add_recipients(session, message.id, recipient_ids)
    except Exception as e:
        logger.error(f"Error creating recipients for message {message.id}: {e}")
        return {"success": False, "message_id": str(message.id), "error": failure_text}

    if sender_id:
        try:
            async with session.begin_nested():
                await _add_recipients(session, message.id, [sender_id], MessageFolder.SENT.value, is_read=True)
        except Exception as e:
            logger.error(f"Error creating sender record for message {message.id}: {e}")

    return {"success": True, "message_id": str(message.id), "recipient_count": len(recipient_ids)}


async def send_direct_message(
    session: AsyncSession,
    sender_id: UUID,
    recipient_id: UUID,
    subject: str,
    body: str,
    sender_role: str = SenderRole.MEMBER.value
) -> Dict[str, Any]:
    """
    Send a message from one user to another.

    Returns:
        ``{"success": True, "message_id": ...}`` or ``{"success": False, "error": ...}``
    """
    if not subject or not body:
        return {"success": False, "error": "Subject and body are required"}

    message = await _create_message(session, sender_id, sender_role, MessageType.DIRECT.value, subject, body)
    return await _deliver(session, message, [recipient_id], sender_id, "Failed to deliver message")


async def send_support_message(session: AsyncSession, user_id: UUID, subject: str, body: str) -> Dict[str, Any]:
    """Member to support: fans out to every super admin and manager admin."""
    if not subject or not body:
        return {"success": False, "error": "Subject and body are required"}

    result = await session.execute(
        select(Profile.id).where(Profile.role.in_(SUPPORT_RECIPIENT_ROLES))
    )
    admin_ids = list(result.scalars().all())
    if not admin_ids:
        return {"success": False, "error": "No admins available to receive support message"}

    message = await _create_message(
        session, user_id, SenderRole.MEMBER.value, MessageType.SUPPORT.value, subject, body
    )
    return await _deliver(session, message, admin_ids, user_id, "Failed to deliver support message")


async def resolve_broadcast_recipients(
    session: AsyncSession,
    target: str,
    country_code: Optional[str] = None,
    selected_user_ids: Optional[List[UUID]] = None
) -> List[UUID]:
    if target == BroadcastTarget.SELECTED_USERS.value:
        return list(selected_user_ids or [])

    role_by_target = {
        BroadcastTarget.ALL_MEMBERS.value: ProfileRole.MEMBER.value,
        BroadcastTarget.COUNTRY_MEMBERS.value: ProfileRole.MEMBER.value,
        BroadcastTarget.ALL_AGENTS.value: ProfileRole.AGENT.value,
        BroadcastTarget.COUNTRY_AGENTS.value: ProfileRole.AGENT.value,
    }
    role = role_by_target.get(target)
    if role is None:
        return []

    query = select(Profile.id).where(Profile.role == role)
    if target in (BroadcastTarget.COUNTRY_MEMBERS.value, BroadcastTarget.COUNTRY_AGENTS.value):
        if not country_code:
            return []
        query = query.where(Profile.country_code == country_code)
    result = await session.execute(query)
    return list(result.scalars().all())


async def send_broadcast_message(
    session: AsyncSession,
    admin_id: UUID,
    target: str,
    subject: str,
    body: str,
    country_code: Optional[str] = None,
    selected_user_ids: Optional[List[UUID]] = None
) -> Dict[str, Any]:
    """
    Broadcast from the chairman to a target group.

    Args:
        session: Database session
        admin_id: Sender, must be the chairman
        target: One of BroadcastTarget
        subject: Message subject
        body: Message body
        country_code: Required for the COUNTRY_* targets
        selected_user_ids: Recipients for SELECTED_USERS

    Returns:
        Result dict with ``recipient_count`` on success
    """
    if not await permissions.is_chairman(session, admin_id):
        return {"success": False, "error": "Only Chairman can send broadcast messages"}

    recipient_ids = await resolve_broadcast_recipients(session, target, country_code, selected_user_ids)
    if not recipient_ids:
        return {"success": False, "error": "No recipients found for broadcast"}

    stored_target = "CUSTOM" if target == BroadcastTarget.SELECTED_USERS.value else target
    message = await _create_message(
        session, admin_id, SenderRole.ADMIN.value, MessageType.BROADCAST.value, subject, body,
        broadcast_target=stored_target
    )
    result = await _deliver(session, message, recipient_ids, None, "Failed to deliver broadcast message")
    if result["success"]:
        logger.info(f"Broadcast {message.id} sent to {len(recipient_ids)} recipients ({stored_target})")
    return result


async def send_system_message(
    session: AsyncSession,
    recipient_id: UUID,
    subject: str,
    body: str,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[str] = None
) -> Dict[str, Any]:
    """System notification to a single user; there is no sender row."""
    message = await _create_message(
        session, None, SenderRole.SYSTEM.value, MessageType.SYSTEM.value, subject, body,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id
    )
    return await _deliver(session, message, [recipient_id], None, "Failed to deliver system message")


async def has_welcome_message(session: AsyncSession, user_id: UUID) -> bool:
    result = await session.execute(
        select(func.count(MessageRecipient.id))
        .join(Message, Message.id == MessageRecipient.message_id)
        .where(
            MessageRecipient.recipient_user_id == user_id,
            Message.message_type == MessageType.SYSTEM.value,
            Message.subject == WELCOME_SUBJECT
        )
    )
    return (result.scalar() or 0) > 0


async def send_membership_welcome_message(
    session: AsyncSession,
    user_id: UUID,
    full_name: Optional[str],
    membership_number: Optional[int],
    referral_code: Optional[str] = None,
    end_date=None
) -> Dict[str, Any]:
    """Welcome message sent once, when a membership first becomes active."""
    if await has_welcome_message(session, user_id):
        return {"success": True, "skipped": True}

    name = full_name or "Member"
    valid_until = end_date.strftime("%d %B %Y") if end_date else "one year from today"
    body = (
        f"Dear {name},\n\n"
        f"Your MigrateSafely membership is now active.\n"
        f"Membership number: {membership_number or 'pending'}\n"
        f"Your referral code: {referral_code or '-'}\n"
        f"Valid until: {valid_until}\n\n"
        "You are automatically eligible for our prize draws while your membership is active. "
        "Verified agents and our support team are available from your dashboard."
    )
    return await send_system_message(
        session, user_id, WELCOME_SUBJECT, body,
        related_entity_type="membership",
        related_entity_id=str(membership_number) if membership_number else None
    )


# Mailbox

async def _list_folder(session: AsyncSession, user_id: UUID, folder: str) -> List[MessageRecipient]:
    result = await session.execute(
        select(MessageRecipient)
        .where(
            MessageRecipient.recipient_user_id == user_id,
            MessageRecipient.folder == folder,
            MessageRecipient.deleted_at.is_(None)
        )
        .order_by(desc(MessageRecipient.created_at))
    )
    return list(result.scalars().unique().all())


async def list_inbox(session: AsyncSession, user_id: UUID) -> List[MessageRecipient]:
    return await _list_folder(session, user_id, MessageFolder.INBOX.value)


async def list_sent(session: AsyncSession, user_id: UUID) -> List[MessageRecipient]:
    return await _list_folder(session, user_id, MessageFolder.SENT.value)


async def list_trash(session: AsyncSession, user_id: UUID) -> List[MessageRecipient]:
    return await _list_folder(session, user_id, MessageFolder.TRASH.value)


async def _get_own_recipient(session: AsyncSession, user_id: UUID, recipient_id: UUID) -> Optional[MessageRecipient]:
    result = await session.execute(
        select(MessageRecipient).where(
            MessageRecipient.id == recipient_id,
            MessageRecipient.recipient_user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def mark_as_read(session: AsyncSession, user_id: UUID, recipient_id: UUID) -> Dict[str, Any]:
    recipient = await _get_own_recipient(session, user_id, recipient_id)
    if not recipient:
        return {"success": False, "error": "Recipient not found"}
    recipient.is_read = True
    recipient.read_at = utcnow()
    await session.flush()
    return {"success": True}


async def move_to_trash(session: AsyncSession, user_id: UUID, recipient_id: UUID) -> Dict[str, Any]:
    recipient = await _get_own_recipient(session, user_id, recipient_id)
    if not recipient:
        return {"success": False, "error": "Recipient not found"}
    recipient.folder = MessageFolder.TRASH.value
    await session.flush()
    return {"success": True}


async def delete_forever(session: AsyncSession, user_id: UUID, recipient_id: UUID) -> Dict[str, Any]:
    """Soft delete: the row stays but disappears from every folder."""
    recipient = await _get_own_recipient(session, user_id, recipient_id)
    if not recipient:
        return {"success": False, "error": "Recipient not found"}
    recipient.deleted_at = utcnow()
    await session.flush()
    return {"success": True}


async def get_unread_count(session: AsyncSession, user_id: UUID) -> int:
    result = await session.execute(
        select(func.count(MessageRecipient.id)).where(
            MessageRecipient.recipient_user_id == user_id,
            MessageRecipient.folder == MessageFolder.INBOX.value,
            MessageRecipient.is_read.is_(False),
            MessageRecipient.deleted_at.is_(None)
        )
    )
    return int(result.scalar() or 0)


def truncate_preview(body: str, length: int = PREVIEW_BODY_LENGTH) -> str:
    if body is None:
        return ""
    if len(body) <= length:
        return body
    return body[:length] + "..."


async def get_unread_preview(session: AsyncSession, user_id: UUID) -> List[Dict[str, Any]]:
    """Five newest unread inbox messages with shortened bodies."""
    result = await session.execute(
        select(MessageRecipient)
        .where(
            MessageRecipient.recipient_user_id == user_id,
            MessageRecipient.folder == MessageFolder.INBOX.value,
            MessageRecipient.is_read.is_(False),
            MessageRecipient.deleted_at.is_(None)
        )
        .order_by(desc(MessageRecipient.created_at))
        .limit(PREVIEW_LIMIT)
    )
    previews = []
    for recipient in result.scalars().unique().all():
        item = recipient.to_dict()
        item["body"] = truncate_preview(item["body"])
        previews.append(item)
    return previews


async def mark_all_as_read(session: AsyncSession, user_id: UUID) -> int:
    result = await session.execute(
        update(MessageRecipient)
        .where(
            MessageRecipient.recipient_user_id == user_id,
            MessageRecipient.folder == MessageFolder.INBOX.value,
            MessageRecipient.is_read.is_(False),
            MessageRecipient.deleted_at.is_(None)
        )
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    return int(result.rowcount or 0)
