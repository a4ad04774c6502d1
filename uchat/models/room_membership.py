from sqlalchemy import Column, ForeignKey, Boolean, DateTime, Enum, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from uchat.schemas.room import MemberRole
from uchat.utils.clock import utcnow
from .base import Base

class RoomMembership(Base):
    __tablename__ = "room_memberships"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_room_membership"),
    )
    
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True)
    role = Column(Enum(MemberRole), nullable=False, default=MemberRole.MEMBER)
    # Flips to True once the member has proven knowledge of the room password.
    has_access = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow)
    
    # Relationships
    user = relationship("User", back_populates="room_memberships")
    room = relationship("Room", back_populates="memberships")
    
    def __repr__(self):
        return f"<RoomMembership(id={self.id}, user_id={self.user_id}, room_id={self.room_id}, has_access={self.has_access})>"
