"""
Media model for uploaded files.
"""
from sqlalchemy import Column, Integer, String, DateTime, BigInteger, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base, utcnow


class Media(Base):
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True, index=True)
    media_type = Column(String(50), nullable=False, index=True)  # image, video, application, ...
    file_path = Column(String(500), nullable=False)
    original_name = Column(String(255), nullable=True)
    mime_type = Column(String(100), nullable=True)
    size = Column(BigInteger, default=0)  # in bytes
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    user = relationship("User", back_populates="media")
    group = relationship("Group", back_populates="media")
