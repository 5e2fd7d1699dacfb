"""
Payment Models

Payments (scheduled or realized coupon disbursements) and the proof
documents attached to them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    PENDING = "pending"
    LATE = "late"
    PAID = "paid"


class Payment(BaseModel):
    """
    Payment record.

    Fields:
    - payment_ref: Human-readable reference (PAY-<ms>-<random>)
    - type: Payment type, "Coupon" for coupon disbursements
    - project_id / tranche_id / investor_id / subscription_id: Links to the issuance
    - amount: Amount paid or due
    - payment_date: Due date (scheduled) or execution date (realized), ISO format
    - status: pending, late or paid
    """

    id: str = Field(..., alias="_id")
    payment_ref: Optional[str] = Field(None, description="Payment reference")
    type: str = Field("Coupon", description="Payment type")
    project_id: Optional[str] = Field(None, description="Project identifier")
    tranche_id: Optional[str] = Field(None, description="Tranche identifier")
    investor_id: Optional[str] = Field(None, description="Investor identifier")
    subscription_id: Optional[str] = Field(None, description="Subscription identifier")
    org_id: Optional[str] = Field(None, description="Owning organization")
    amount: float = Field(..., description="Payment amount")
    payment_date: str = Field(..., description="Due or execution date (YYYY-MM-DD)")
    status: PaymentStatus = Field(PaymentStatus.PENDING, description="Payment status")

    class Config:
        populate_by_name = True


class PaymentProof(BaseModel):
    """Uploaded proof file linked to a payment, with the analysis output it was confirmed from."""

    id: str = Field(..., alias="_id")
    payment_id: str = Field(..., description="Payment the proof belongs to")
    file_url: str = Field(..., description="Public URL in the permanent bucket")
    file_name: str = Field(..., description="Original file name")
    file_size: Optional[int] = Field(None, description="Original file size in bytes")
    extracted_data: Dict[str, Any] = Field(default_factory=dict, description="Payment fields extracted by the analysis")
    confidence: Optional[float] = Field(None, description="Match confidence (0-100)")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Record creation timestamp")

    class Config:
        populate_by_name = True
