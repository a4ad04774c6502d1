from sqlalchemy.orm import relationship
from sqlalchemy import Column, ForeignKey, Text, DateTime, Enum, String, Boolean, Uuid

from .base import Base
from uchat.schemas.message import MessageType
from uchat.utils.clock import utcnow

class Message(Base):
    __tablename__ = "messages"
    
    # Plaintext is kept alongside the ciphertext as a backup copy.
    content = Column(Text, nullable=False)
    encrypted_content = Column(Text, nullable=False)
    message_type = Column(Enum(MessageType), default=MessageType.TEXT)
    
    # Sender information, snapshotted at send time and never refreshed
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    sender = relationship("User", foreign_keys=[sender_id], back_populates="messages_sent")
    sender_name = Column(String(50), nullable=False)
    sender_avatar = Column(String(255), nullable=True)
    sender_color = Column(String(20), nullable=True)
    
    # Room information
    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True)
    room = relationship("Room", back_populates="messages")
    room_name = Column(String(50), nullable=False)
    
    # Metadata
    is_edited = Column(Boolean, default=False)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    
    def __repr__(self):
        return f"<Message(id={self.id}, sender_id={self.sender_id}, room_id={self.room_id})>"
