"""
Payment proof management: listing and deleting confirmed proofs.
"""

from datetime import date
from typing import List, Optional

from obligations.models.payment import PaymentProof, PaymentStatus
from obligations.services import mongodb, storage
from obligations.utils.errors import NotFoundError
from obligations.utils.logger import log_message
from obligations.utils.parser_helper import ParserHelper

LATE_AFTER_DAYS = 7


def unpaid_status(due_date: str, today: Optional[date] = None) -> PaymentStatus:
    """
    Status of a payment that has no proof anymore.

    A payment is late from the seventh calendar day after its due date on,
    which is when any time of day is more than 7 days past the due date.
    """
    today = today or date.today()
    due = ParserHelper.parse_european_date(due_date)
    if due is not None and (today - due).days >= LATE_AFTER_DAYS:
        return PaymentStatus.LATE
    return PaymentStatus.PENDING


async def list_payment_proofs(payment_id: str) -> List[PaymentProof]:
    payment = await mongodb.get_payment(payment_id)
    if not payment:
        raise NotFoundError(f"Payment {payment_id} not found")
    docs = await mongodb.list_payment_proofs(payment_id)
    return [PaymentProof.model_validate(doc) for doc in docs]


async def delete_payment_proof(proof_id: str, today: Optional[date] = None) -> dict:
    """
    Delete a proof and its stored file.

    A storage failure is logged and does not stop the deletion. When the
    deleted proof was the payment's last one, the payment goes back to
    pending or late.

    Returns:
        dict: proof_id, payment_id and the payment status after deletion
            (None when unchanged)
    """
    proof = await mongodb.get_payment_proof(proof_id)
    if not proof:
        raise NotFoundError(f"Proof {proof_id} not found")

    path = storage.path_from_public_url(proof.get("file_url"), storage.PAYMENT_PROOFS_BUCKET)
    if path:
        try:
            await storage.remove_files(storage.PAYMENT_PROOFS_BUCKET, [path])
        except Exception as e:
            log_message("warning", f"Could not remove stored file for proof {proof_id}: {e}")

    await mongodb.delete_payment_proof(proof_id)

    payment_id = proof["payment_id"]
    new_status = None
    if await mongodb.count_payment_proofs(payment_id) == 0:
        payment = await mongodb.get_payment(payment_id)
        if payment:
            new_status = unpaid_status(payment.get("payment_date"), today)
            await mongodb.update_payment_status(payment_id, new_status.value)

    log_message("info", f"Deleted proof {proof_id} of payment {payment_id}")
    return {
        "proof_id": proof_id,
        "payment_id": payment_id,
        "payment_status": new_status.value if new_status else None,
    }
