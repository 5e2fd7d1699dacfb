from fastapi import APIRouter, File, UploadFile, status

from obligations.interactors import echeances as echeance_interactors
from obligations.interactors import local_matching
from obligations.routes.common import create_response, error_response
from obligations.utils.file_validation import PRESETS, validate_file
from obligations.utils.logger import log_message

router = APIRouter(prefix="/api/tranches", tags=["Tranches"])


@router.get("/{tranche_id}/echeances")
async def list_echeances(tranche_id: str):
    """Coupon échéances of a tranche grouped by due date."""
    try:
        groups = await echeance_interactors.list_tranche_echeances(tranche_id)
        return create_response(True, f"Found {len(groups)} due date(s)", groups)
    except Exception as e:
        return error_response(e, "Listing échéances")


@router.post("/{tranche_id}/statement-match")
async def match_statement(tranche_id: str, file: UploadFile = File(...)):
    """
    Match a bank statement against the subscriptions of a tranche.

    Args:
        tranche_id: Tranche to match against.
        file: CSV export or PDF statement with a text layer.

    Returns:
        JSON response with one result per statement line that carries a
        name and an amount, plus a count per match status.
    """
    try:
        data = await file.read()
        check = validate_file(file.filename, file.content_type, len(data), PRESETS["statements"])
        if not check.valid:
            return create_response(False, check.error, code=status.HTTP_400_BAD_REQUEST)

        log_message("info", f"Received statement {file.filename} for tranche={tranche_id}")
        report = await local_matching.match_statement(tranche_id, file.filename, data)
        return create_response(True, f"Matched {len(report.results)} line(s)", report)
    except Exception as e:
        return error_response(e, "Statement matching")
