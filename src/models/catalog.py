"""
Read models for users and products referenced by trades, orders and ratings
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserContact(BaseModel):
    """Contact details needed to reach a user on every channel"""
    id: str
    email: str
    phone: Optional[str] = None
    display_name: Optional[str] = None
    role: UserRole = Field(default=UserRole.USER)


class ProductStatus(str, Enum):
    ACTIVE = "active"
    RESERVED = "reserved"  # Locked in an accepted trade
    SOLD = "sold"
    INACTIVE = "inactive"


class Product(BaseModel):
    """Listing as seen by the trade and order flows"""
    id: str
    seller_id: str
    title: str = ""
    price: Optional[float] = Field(None, ge=0)
    status: ProductStatus = Field(default=ProductStatus.ACTIVE)
    is_trade_enabled: bool = True
