from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from uchat.models.base import Base
from uchat.utils.clock import utcnow

class User(Base):
    __tablename__ = "users"
    
    username = Column(String(50), unique=True, nullable=False)
    display_name = Column(String(50), unique=False, nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    avatar = Column(String(255), nullable=True)
    color = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True)
    is_online = Column(Boolean, default=False)
    last_seen = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    
    # Relationships
    messages_sent = relationship("Message", foreign_keys="Message.sender_id", back_populates="sender")
    room_memberships = relationship("RoomMembership", back_populates="user")
    
    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
