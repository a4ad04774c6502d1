from sqlalchemy import Column, ForeignKey, String, DateTime, Enum, Uuid
from sqlalchemy.orm import relationship
from uchat.schemas.room import InvitationStatus
from uchat.utils.clock import utcnow
from .base import Base

class Invitation(Base):
    __tablename__ = "invitations"

    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True)
    invited_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    invited_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    invite_code = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(Enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    room = relationship("Room", back_populates="invitations")
    invited_by = relationship("User", foreign_keys=[invited_by_id])
    invited_user = relationship("User", foreign_keys=[invited_user_id])

    def __repr__(self):
        return f"<Invitation(id={self.id}, room_id={self.room_id}, status='{self.status}')>"
