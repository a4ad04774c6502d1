from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from uchat.models.base import Base
from uchat.utils.clock import utcnow
from .invitation import Invitation
from .message import Message
from .room_membership import RoomMembership

class Room(Base):
    __tablename__ = "rooms"
    
    name = Column(String(50), nullable=False)
    description = Column(String(200), nullable=False, default="")
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    # Never serialised to clients.
    encryption_key = Column(String(64), nullable=False)
    max_members = Column(Integer, nullable=False, default=50)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    
    creator = relationship("User", foreign_keys=[created_by])
    messages = relationship("Message", back_populates="room", cascade="all, delete-orphan")
    memberships = relationship(
        "RoomMembership",
        back_populates="room",
        order_by="RoomMembership.joined_at",
        cascade="all, delete-orphan",
    )
    invitations = relationship("Invitation", back_populates="room", cascade="all, delete-orphan")
    
    def __repr__(self):
        return f"<Room(id={self.id}, name='{self.name}')>"
