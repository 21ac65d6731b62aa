from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class PackageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    features: Optional[Dict[str, Any]] = None
    price: Decimal = Field(ge=0)
    duration_days: int = Field(default=30, gt=0)
    is_active: bool = True


class PackageUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    features: Optional[Dict[str, Any]] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    duration_days: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class PackageResponse(BaseModel):
    id: int
    name: str
    features: Optional[Dict[str, Any]]
    price: float
    duration_days: int
    is_active: bool

    class Config:
        from_attributes = True
