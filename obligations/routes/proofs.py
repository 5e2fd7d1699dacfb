from fastapi import APIRouter

from obligations.interactors import proofs as proof_interactors
from obligations.routes.common import create_response, error_response

router = APIRouter(prefix="/api", tags=["Payment Proofs"])


@router.get("/payments/{payment_id}/proofs")
async def list_payment_proofs(payment_id: str):
    """List the proofs attached to a payment, newest first."""
    try:
        proofs = await proof_interactors.list_payment_proofs(payment_id)
        return create_response(True, f"Found {len(proofs)} proof(s)", proofs)
    except Exception as e:
        return error_response(e, "Listing payment proofs")


@router.delete("/payment-proofs/{proof_id}")
async def delete_payment_proof(proof_id: str):
    """
    Delete a proof and its stored file.

    When it was the payment's last proof, the payment status reverts to
    pending, or late if the due date is more than 7 days past.
    """
    try:
        result = await proof_interactors.delete_payment_proof(proof_id)
        return create_response(True, "Proof deleted", result)
    except Exception as e:
        return error_response(e, "Proof deletion")
