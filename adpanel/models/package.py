"""
Package model: purchasable plans, edited only by admins.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, JSON
from ..database import Base, utcnow


class Package(Base):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    features = Column(JSON, nullable=True)  # {"max_groups": 5, "max_storage_mb": 2048, ...}
    price = Column(Numeric(10, 2), nullable=False)  # major currency units
    duration_days = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
