"""
Link model: a public 4-digit playback code bound to one group.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base, utcnow


class Link(Base):
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    # One row per code; expired rows are evicted when their code is drawn again
    link_code = Column(String(4), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="links")
    group = relationship("Group", back_populates="links")

    def is_expired(self, now=None) -> bool:
        return self.expires_at <= (now or utcnow())
