"""
Trade data models
Represents an item-for-item swap between two users, its shipments and its dispute
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any
import uuid

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class TradeStatus(str, Enum):
    """Lifecycle status of a trade"""
    PENDING = "pending"  # Proposal awaiting receiver response
    ACCEPTED = "accepted"  # Receiver agreed, awaiting shipments
    REJECTED = "rejected"  # Receiver declined
    COUNTERED = "countered"  # Replaced by a counter proposal
    SHIPPED = "shipped"  # At least one side has shipped
    COMPLETED = "completed"  # Both sides received (or auto-confirmed, or admin completed)
    CANCELLED = "cancelled"  # Withdrawn, expired or cancelled by admin
    DISPUTED = "disputed"  # Escalated, waiting for admin resolution


class TradeSide(str, Enum):
    """Which party of the trade an item or shipment belongs to"""
    INITIATOR = "initiator"
    RECEIVER = "receiver"

    def other(self) -> "TradeSide":
        return TradeSide.RECEIVER if self == TradeSide.INITIATOR else TradeSide.INITIATOR


class ShipmentStatus(str, Enum):
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class DisputeResolution(str, Enum):
    """Fixed outcomes an admin may choose when resolving a dispute"""
    COMPLETE_TRADE = "complete_trade"
    CANCEL = "cancel"
    FAVOR_INITIATOR = "favor_initiator"
    FAVOR_RECEIVER = "favor_receiver"


class TradeItem(BaseModel):
    """A product offered by one side of a trade"""
    id: str = Field(default_factory=_new_id)
    trade_id: str = Field(..., description="Owning trade")
    side: TradeSide = Field(..., description="Side that gives this product")
    product_id: str = Field(..., description="Referenced product")
    value: Optional[float] = Field(None, ge=0, description="Agreed value in TRY, if stated")


class Shipment(BaseModel):
    """Shipment of one side's items; at most one per side"""
    id: str = Field(default_factory=_new_id)
    trade_id: str
    side: TradeSide
    carrier: str = Field(..., description="Carrier code, e.g. 'aras', 'yurtici', 'mng'")
    tracking_number: str
    status: ShipmentStatus = Field(default=ShipmentStatus.IN_TRANSIT)
    shipped_at: datetime = Field(default_factory=_utc_now)
    delivered_at: Optional[datetime] = None


class TradeDispute(BaseModel):
    """
    Escalation record attached to a trade
    Annotated on resolution, never deleted
    """
    id: str = Field(default_factory=_new_id)
    trade_id: str
    opened_by: str = Field(..., description="Party who raised the dispute")
    reason: str = Field(..., min_length=1)
    description: Optional[str] = None
    evidence_urls: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)

    # Resolution (terminal once set)
    resolution: Optional[DisputeResolution] = None
    admin_note: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolution is not None


class Trade(BaseModel):
    """
    Complete trade aggregate
    Owned jointly by initiator and receiver
    """
    id: str = Field(default_factory=_new_id)
    initiator_id: str
    receiver_id: str
    status: TradeStatus = Field(default=TradeStatus.PENDING)

    initiator_items: List[TradeItem] = Field(default_factory=list)
    receiver_items: List[TradeItem] = Field(default_factory=list)

    # Optional cash adjustment paid by one of the parties
    cash_amount: Optional[float] = Field(None, gt=0)
    cash_payer_id: Optional[str] = None
    message: Optional[str] = Field(None, max_length=500)
    parent_trade_id: Optional[str] = Field(None, description="Trade this one counters")

    # Timeline
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    response_deadline: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    shipping_deadline: Optional[datetime] = None
    initiator_confirmed_at: Optional[datetime] = None
    receiver_confirmed_at: Optional[datetime] = None
    auto_confirmed: bool = False
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancel_reason: Optional[str] = None

    shipments: List[Shipment] = Field(default_factory=list)
    dispute: Optional[TradeDispute] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.initiator_id, self.receiver_id)

    def side_of(self, user_id: str) -> Optional[TradeSide]:
        if user_id == self.initiator_id:
            return TradeSide.INITIATOR
        if user_id == self.receiver_id:
            return TradeSide.RECEIVER
        return None

    def other_party(self, user_id: str) -> Optional[str]:
        if user_id == self.initiator_id:
            return self.receiver_id
        if user_id == self.receiver_id:
            return self.initiator_id
        return None

    def shipment_for(self, side: TradeSide) -> Optional[Shipment]:
        for shipment in self.shipments:
            if shipment.side == side:
                return shipment
        return None

    def both_shipped(self) -> bool:
        return (
            self.shipment_for(TradeSide.INITIATOR) is not None
            and self.shipment_for(TradeSide.RECEIVER) is not None
        )

    def product_ids(self) -> List[str]:
        return [item.product_id for item in self.initiator_items + self.receiver_items]

    @property
    def has_open_dispute(self) -> bool:
        return self.dispute is not None and not self.dispute.is_resolved

    def dispute_invariant_holds(self) -> bool:
        """An open dispute exists exactly while the trade is disputed"""
        return self.has_open_dispute == (self.status == TradeStatus.DISPUTED)
