"""
Pydantic models for trade requests and responses.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from src.models.trade import TradeStatus, TradeSide, ShipmentStatus, DisputeResolution


# ============================================================================
# REQUEST MODELS
# ============================================================================

class TradeProposeRequest(BaseModel):
    """Model for proposing a new trade."""
    receiver_id: str = Field(..., description="User the offer is sent to")
    offered_product_ids: List[str] = Field(..., description="Initiator's products")
    requested_product_ids: List[str] = Field(..., description="Receiver's products")
    cash_amount: Optional[float] = Field(None, gt=0, description="Optional cash adjustment in TRY")
    cash_payer_id: Optional[str] = Field(None, description="Party paying the cash adjustment")
    message: Optional[str] = Field(None, max_length=500)


class TradeCounterRequest(BaseModel):
    """Model for a counter offer. Empty item lists swap the original sets."""
    offered_product_ids: Optional[List[str]] = None
    requested_product_ids: Optional[List[str]] = None
    cash_amount: Optional[float] = Field(None, gt=0)
    cash_payer_id: Optional[str] = None
    message: Optional[str] = Field(None, max_length=500)


class TradeReasonRequest(BaseModel):
    """Optional free-text reason for reject and cancel."""
    reason: Optional[str] = Field(None, max_length=500)


class TradeShipRequest(BaseModel):
    """Model for recording one side's shipment."""
    carrier: str = Field(..., min_length=1, description="Carrier code, e.g. 'aras'")
    tracking_number: Optional[str] = Field(None, description="Generated when omitted")


class TradeDisputeRequest(BaseModel):
    """Model for raising a dispute."""
    reason: str = Field(..., min_length=1)
    description: Optional[str] = None
    evidence_urls: List[str] = Field(default_factory=list)


class ResolveDisputeRequest(BaseModel):
    """Model for an admin resolving a dispute."""
    resolution: str = Field(..., description="complete_trade, cancel, favor_initiator or favor_receiver")
    note: Optional[str] = Field(None, max_length=1000)


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class TradeItemResponse(BaseModel):
    """Model for a product on one side of a trade."""
    id: str
    side: TradeSide
    product_id: str
    value: Optional[float] = None

    class Config:
        from_attributes = True


class ShipmentResponse(BaseModel):
    """Model for one side's shipment."""
    side: TradeSide
    carrier: str
    tracking_number: str
    status: ShipmentStatus
    shipped_at: datetime
    delivered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DisputeResponse(BaseModel):
    """Model for a trade dispute, open or resolved."""
    id: str
    opened_by: str
    reason: str
    description: Optional[str] = None
    evidence_urls: List[str] = Field(default_factory=list)
    created_at: datetime
    resolution: Optional[DisputeResolution] = None
    admin_note: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TradeResponse(BaseModel):
    """Model for trade response."""
    id: str = Field(..., description="Trade UUID")
    initiator_id: str
    receiver_id: str
    status: TradeStatus
    initiator_items: List[TradeItemResponse] = Field(default_factory=list)
    receiver_items: List[TradeItemResponse] = Field(default_factory=list)
    cash_amount: Optional[float] = None
    cash_payer_id: Optional[str] = None
    message: Optional[str] = None
    parent_trade_id: Optional[str] = None
    response_deadline: Optional[datetime] = None
    shipping_deadline: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    auto_confirmed: bool = False
    shipments: List[ShipmentResponse] = Field(default_factory=list)
    dispute: Optional[DisputeResponse] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CounterTradeResponse(BaseModel):
    """The countered original and the new pending proposal."""
    original: TradeResponse
    counter: TradeResponse


class TradeListResponse(BaseModel):
    """Paginated list of trades, newest first."""
    trades: List[TradeResponse]
    total: int
    page: int
    limit: int
    meta: Dict[str, Any] = Field(default_factory=dict)
