from fastapi import APIRouter

from obligations.routes.common import create_response
from obligations.utils.validators import is_valid_siren

router = APIRouter(prefix="/api/validators", tags=["Validators"])


@router.get("/siren/{value}")
async def validate_siren(value: str):
    """Check a SIREN number (9 digits with a valid Luhn checksum)."""
    valid = is_valid_siren(value)
    message = "Valid SIREN" if valid else "Invalid SIREN: 9 digits with a valid checksum expected"
    return create_response(True, message, {"value": value, "valid": valid})
