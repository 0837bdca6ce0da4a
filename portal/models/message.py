"""
Message models - one message row fans out to recipient rows
"""

from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.db.base import Base
from portal.core.timeutils import utcnow
from portal.models.enums import MessageFolder
import uuid


class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_user_id = Column(UUID(as_uuid=True), nullable=True)
    sender_role = Column(String(16), nullable=False)
    message_type = Column(String(16), nullable=False)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    broadcast_target = Column(String(32), nullable=True)
    related_entity_type = Column(String(64), nullable=True)
    related_entity_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Message(id={self.id}, type={self.message_type}, subject={self.subject!r})>"


class MessageRecipient(Base):
    __tablename__ = "message_recipients"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    message_id = Column(UUID(as_uuid=True), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False)
    recipient_user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    folder = Column(String(16), nullable=False, default=MessageFolder.INBOX.value)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    message = relationship("Message", lazy="joined")

    def to_dict(self):
        message = self.message
        return {
            "recipientId": str(self.id),
            "messageId": str(self.message_id),
            "folder": self.folder,
            "isRead": self.is_read,
            "readAt": self.read_at.isoformat() if self.read_at else None,
            "subject": message.subject if message else None,
            "body": message.body if message else None,
            "senderRole": message.sender_role if message else None,
            "senderUserId": str(message.sender_user_id) if message and message.sender_user_id else None,
            "messageType": message.message_type if message else None,
            "createdAt": message.created_at.isoformat() if message and message.created_at else None,
        }
