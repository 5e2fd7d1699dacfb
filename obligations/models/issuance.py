"""
Issuance Models

Projects, tranches, investors, subscriptions and coupon schedule entries
(échéances) as read from the external store.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class Project(BaseModel):
    id: str = Field(..., alias="_id")
    name: str = Field(..., description="Project name")
    org_id: Optional[str] = Field(None, description="Owning organization")
    rate: Optional[float] = Field(None, description="Nominal annual rate (%)")
    maturity_date: Optional[str] = Field(None, description="Maturity date (YYYY-MM-DD)")
    base: Optional[int] = Field(None, description="Day-count base (360 or 365)")

    class Config:
        populate_by_name = True


class Tranche(BaseModel):
    id: str = Field(..., alias="_id")
    project_id: str = Field(..., description="Parent project")
    tranche_name: str = Field(..., description="Tranche name")
    rate: Optional[float] = Field(None, description="Tranche annual rate (%)")
    frequency: Optional[str] = Field(None, description="Coupon frequency")

    class Config:
        populate_by_name = True


class Subscription(BaseModel):
    """
    An investor's stake in a tranche.

    investor_name is denormalized from the investors collection when the
    subscription is loaded for matching.
    """

    id: str = Field(..., alias="_id")
    tranche_id: str = Field(..., description="Tranche subscribed to")
    investor_id: str = Field(..., description="Subscribing investor")
    investor_name: str = Field("", description="Investor legal name")
    amount_invested: float = Field(0.0, description="Subscribed amount")
    coupon_net: float = Field(0.0, description="Net coupon amount per period")
    coupon_gross: Optional[float] = Field(None, description="Gross coupon amount per period")

    class Config:
        populate_by_name = True


class EcheanceStatus(str, Enum):
    PAID = "paid"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"


class Echeance(BaseModel):
    """One scheduled coupon due date for one subscription."""

    id: str = Field(..., alias="_id")
    subscription_id: str = Field(..., description="Subscription owed")
    due_date: str = Field(..., description="Due date (YYYY-MM-DD)")
    coupon_amount: float = Field(..., description="Coupon amount due")
    status: str = Field("upcoming", description="Stored status")
    payment_id: Optional[str] = Field(None, description="Payment settling this échéance")
    amount_paid: Optional[float] = Field(None, description="Amount actually paid")

    class Config:
        populate_by_name = True


class EcheanceGroup(BaseModel):
    """All échéances of a tranche that share a due date."""

    date: str
    total_amount: float
    count: int
    status: EcheanceStatus
    days_overdue: Optional[int] = None
    echeances: List[Echeance] = Field(default_factory=list)
