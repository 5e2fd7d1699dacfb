"""
Proof Analysis Models

Wire models for the remote payment analysis functions (French field names
on the wire, English attribute names in code) and the stored analysis
session that links an upload to its later confirmation or rejection.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from obligations.utils.parser_helper import ParserHelper


class RemoteMatchStatus(str, Enum):
    MATCH = "correspondance"
    PARTIAL = "partielle"
    NO_MATCH = "pas-de-correspondance"


class AnalysisMode(str, Enum):
    SINGLE = "single"
    TRANCHE = "tranche"


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    FAILED = "failed"


class ExtractedPayment(BaseModel):
    """A payment line read from the proof by the analysis function."""

    beneficiary: str = Field("", alias="beneficiaire", description="Who received the money")
    amount: Optional[float] = Field(None, alias="montant", description="Amount paid")
    date: Optional[str] = Field(None, alias="date", description="Execution date (DD-MM-YYYY)")
    reference: Optional[str] = Field(None, alias="reference", description="Transfer reference")
    iban: Optional[str] = Field(None, alias="iban", description="Beneficiary IBAN if visible")

    class Config:
        populate_by_name = True

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v):
        return ParserHelper.parse_amount(v)

    @field_validator("beneficiary", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or ""


class ExpectedPayment(BaseModel):
    """What the batch analysis function should look for, one per subscription."""

    investor_name: str = Field(..., alias="investorName")
    expected_amount: float = Field(..., alias="expectedAmount")
    subscription_id: str = Field(..., alias="subscriptionId")
    investor_id: Optional[str] = Field(None, alias="investisseurId")

    class Config:
        populate_by_name = True


class RemoteMatchDetails(BaseModel):
    amount_gap: Optional[float] = Field(None, alias="ecartMontant")
    amount_gap_percent: Optional[float] = Field(None, alias="ecartMontantPourcent")
    day_gap: Optional[int] = Field(None, alias="ecartJours")
    name_score: Optional[float] = Field(None, alias="nameScore")

    class Config:
        populate_by_name = True

    @field_validator("amount_gap", "amount_gap_percent", "name_score", mode="before")
    @classmethod
    def _parse_number(cls, v):
        # The functions send these as fixed-point strings ("12.50")
        return ParserHelper.parse_amount(v)


class RemoteMatch(BaseModel):
    """
    One extracted payment with the best expected payment it was matched to.

    subscription_id is filled from the expected block in tranche mode so the
    confirmation step can create the payment against the right subscription.
    """

    payment: ExtractedPayment = Field(..., alias="paiement")
    expected: Optional[Dict[str, Any]] = Field(None, alias="attendu")
    status: RemoteMatchStatus = Field(RemoteMatchStatus.NO_MATCH, alias="statut")
    confidence: float = Field(0, alias="confiance")
    details: RemoteMatchDetails = Field(default_factory=RemoteMatchDetails)
    subscription_id: Optional[str] = None
    investor_id: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("details", mode="before")
    @classmethod
    def _empty_details(cls, v):
        return v or {}


class AnalysisResponse(BaseModel):
    """Body returned by analyze-payment and analyze-payment-batch."""

    success: bool = Field(False, alias="succes")
    error: Optional[str] = Field(None, alias="erreur")
    extracted_data: Optional[Dict[str, Any]] = Field(None, alias="donneesExtraites")
    matches: List[RemoteMatch] = Field(default_factory=list, alias="correspondances")

    class Config:
        populate_by_name = True


class ProofAnalysis(BaseModel):
    """
    Stored analysis session.

    Holds the temporary files uploaded for one analysis and the matches the
    remote function returned, until the user confirms or rejects them.
    """

    id: str = Field(..., alias="_id")
    mode: AnalysisMode
    payment_id: Optional[str] = None
    tranche_id: Optional[str] = None
    project_id: Optional[str] = None
    echeance_date: Optional[str] = None
    temp_file_names: List[str] = Field(default_factory=list)
    file_urls: List[str] = Field(default_factory=list)
    source_file_name: str
    source_file_size: Optional[int] = None
    matches: List[RemoteMatch] = Field(default_factory=list)
    status: AnalysisStatus = AnalysisStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True


class ConfirmRequest(BaseModel):
    """Indexes of the matches to confirm; omitted means every full match."""

    match_indexes: Optional[List[int]] = Field(None, description="Indexes into the analysis matches")
