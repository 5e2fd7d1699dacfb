from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile

from obligations.interactors import reconciliation as reconciliation_interactors
from obligations.models.analysis import ConfirmRequest
from obligations.routes.common import create_response, error_response, read_uploads
from obligations.utils.logger import log_message

router = APIRouter(prefix="/api", tags=["Reconciliation"])


@router.post("/payments/{payment_id}/proofs/analyze")
async def analyze_payment_proof(payment_id: str, files: List[UploadFile] = File(...)):
    """
    Analyze proof-of-payment files for a single payment.

    PDF pages are rasterized, stored as temporary images and sent to the
    analysis function together with the payment's expected amount and date.

    Args:
        payment_id: Payment the proof is for.
        files: PDF or image files.

    Returns:
        JSON response with the stored analysis (id, matches, temp file URLs).
    """
    try:
        log_message("info", f"Received proof analysis for payment={payment_id} ({len(files)} file(s))")
        incoming = await read_uploads(files)
        analysis = await reconciliation_interactors.analyze_payment_proof(payment_id, incoming)
        return create_response(True, f"Analysis completed with {len(analysis.matches)} match(es)", analysis)
    except Exception as e:
        return error_response(e, "Payment proof analysis")


@router.post("/tranches/{tranche_id}/proofs/analyze")
async def analyze_tranche_proof(
    tranche_id: str,
    files: List[UploadFile] = File(...),
    echeance_date: Optional[str] = Form(None),
):
    """
    Analyze a proof covering several coupon payments of a tranche.

    Args:
        tranche_id: Tranche whose subscriptions are expected in the proof.
        files: PDF or image files.
        echeance_date: Due date (YYYY-MM-DD) the coupons belong to, if known.
    """
    try:
        log_message("info", f"Received batch proof analysis for tranche={tranche_id} ({len(files)} file(s))")
        incoming = await read_uploads(files)
        analysis = await reconciliation_interactors.analyze_tranche_proof(
            tranche_id, incoming, echeance_date or None
        )
        return create_response(True, f"Analysis completed with {len(analysis.matches)} match(es)", analysis)
    except Exception as e:
        return error_response(e, "Tranche proof analysis")


@router.post("/proof-analyses/{analysis_id}/confirm")
async def confirm_analysis(analysis_id: str, request: Optional[ConfirmRequest] = None):
    """Confirm the selected matches of an analysis (all full matches when none are given)."""
    try:
        indexes = request.match_indexes if request else None
        result = await reconciliation_interactors.confirm_analysis(analysis_id, indexes)
        return create_response(
            True, f"{len(result['payment_ids'])} payment(s) confirmed", result
        )
    except Exception as e:
        return error_response(e, "Analysis confirmation")


@router.post("/proof-analyses/{analysis_id}/reject")
async def reject_analysis(analysis_id: str):
    try:
        result = await reconciliation_interactors.reject_analysis(analysis_id)
        return create_response(True, "Analysis rejected", result)
    except Exception as e:
        return error_response(e, "Analysis rejection")
