"""
Payment proof reconciliation.

Turns uploaded proof documents into page images in temporary storage, has
the remote analysis function read and match them, and on confirmation
moves the proof to permanent storage and settles the matched payments.
"""

import asyncio
import os
import random
import time
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from obligations.models.analysis import (
    AnalysisMode,
    AnalysisStatus,
    ExpectedPayment,
    ProofAnalysis,
    RemoteMatch,
    RemoteMatchStatus,
)
from obligations.models.issuance import Project, Subscription, Tranche
from obligations.models.payment import Payment, PaymentStatus
from obligations.services import analysis_client, mongodb, storage
from obligations.utils.errors import InvalidInputError, NotFoundError
from obligations.utils.file_processor import FileProcessor
from obligations.utils.file_validation import PRESETS, validate_files
from obligations.utils.logger import log_message
from obligations.utils.parser_helper import ParserHelper
from obligations.utils.validators import is_valid_amount

ANALYSIS_MAX_TOTAL_MB = float(os.getenv("ANALYSIS_MAX_TOTAL_MB", 20))
LOW_CONFIDENCE = 50

Record = TypeVar("Record", bound=BaseModel)


@dataclass
class IncomingFile:
    """An uploaded file, already read into memory."""

    name: str
    content_type: str
    data: bytes


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _as_record(model: Type[Record], doc: dict, label: str) -> Record:
    try:
        return model.model_validate(doc)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidInputError(f"{label} {doc.get('_id')} is incomplete: {fields}")


def generate_payment_ref() -> str:
    """Payment reference in the PAY-<ms>-<random> layout."""
    suffix = "".join(random.choices("ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789", k=9))
    return f"PAY-{_timestamp_ms()}-{suffix}"


def _check_uploads(files: List[IncomingFile]):
    result = validate_files(
        ((f.name, f.content_type, len(f.data)) for f in files), PRESETS["documents"]
    )
    if not result.valid:
        raise InvalidInputError(result.error)


async def _to_page_images(
    files: List[IncomingFile], compress: bool = False
) -> List[Tuple[str, bytes, str]]:
    """
    Convert uploads into (temp name, content, content type) page images.

    Temp names carry a timestamp and the upload index so that files with the
    same name in one request never collide.

    PDF pages are rasterized to PNG in a worker thread. With compress=True
    every page is downscaled and re-encoded as JPEG.
    """
    pages = []
    for i, f in enumerate(files):
        ts = f"{_timestamp_ms()}_{i}"
        if FileProcessor.is_pdf(f.name, f.content_type):
            stem = os.path.splitext(f.name)[0]
            images = await asyncio.to_thread(FileProcessor.rasterize_pdf, f.data)
            for n, png in enumerate(images, start=1):
                pages.append((f"{ts}_{stem}_page{n}.png", png, "image/png"))
        else:
            pages.append((f"{ts}_{f.name}", f.data, f.content_type))

    if compress:
        compressed = []
        for name, content, _ in pages:
            jpeg = await asyncio.to_thread(FileProcessor.compress_image, content)
            compressed.append((f"{os.path.splitext(name)[0]}.jpg", jpeg, "image/jpeg"))
        pages = compressed

    total = sum(len(content) for _, content, _ in pages)
    if total > ANALYSIS_MAX_TOTAL_MB * 1024 * 1024:
        raise InvalidInputError(
            f"Images are too large ({total / 1024 / 1024:.2f} MB). "
            f"Limit: {ANALYSIS_MAX_TOTAL_MB:g} MB. Reduce the number of files."
        )
    return pages


async def _upload_temp(pages: List[Tuple[str, bytes, str]], uploaded: List[str]) -> List[str]:
    """Upload page images to the temp bucket, appending each stored name to `uploaded`."""
    urls = []
    for name, content, content_type in pages:
        await storage.upload_file(storage.PAYMENT_PROOFS_TEMP_BUCKET, name, content, content_type)
        uploaded.append(name)
        urls.append(storage.get_public_url(storage.PAYMENT_PROOFS_TEMP_BUCKET, name))
    if not urls:
        raise InvalidInputError("No image could be prepared for analysis")
    return urls


async def _cleanup_temp(names: List[str]):
    """Best-effort removal of temp files; failures are logged only."""
    if not names:
        return
    try:
        await storage.remove_files(storage.PAYMENT_PROOFS_TEMP_BUCKET, names)
    except Exception as e:
        log_message("warning", f"Temp file cleanup failed for {len(names)} file(s): {e}")


async def analyze_payment_proof(payment_id: str, files: List[IncomingFile]) -> ProofAnalysis:
    """
    Analyze a proof of payment for one known payment.

    Args:
        payment_id: Payment the proof is for
        files: Uploaded PDF or image files

    Returns:
        ProofAnalysis: Stored analysis session with the remote matches

    Raises:
        NotFoundError: If the payment does not exist.
        InvalidInputError: If the payment record is incomplete or the files are rejected.
        AnalysisServiceError: If the remote function fails.
    """
    doc = await mongodb.get_payment(payment_id)
    if not doc:
        raise NotFoundError(f"Payment {payment_id} not found")
    payment = _as_record(Payment, doc, "Payment")
    _check_uploads(files)

    tranche = await mongodb.get_tranche(payment.tranche_id) if payment.tranche_id else None
    investor = await mongodb.get_investor(payment.investor_id) if payment.investor_id else None

    uploaded: List[str] = []
    try:
        pages = await _to_page_images(files)
        urls = await _upload_temp(pages, uploaded)

        response = await analysis_client.get_functions_client().analyze_payment(
            file_urls=urls,
            expected_amount=payment.amount,
            due_date=ParserHelper.format_european_date(payment.payment_date),
            tranche_name=(tranche or {}).get("tranche_name", ""),
            investor_name=(investor or {}).get("legal_name", ""),
        )

        doc = await mongodb.insert_proof_analysis({
            "mode": AnalysisMode.SINGLE.value,
            "payment_id": payment_id,
            "tranche_id": payment.tranche_id,
            "project_id": payment.project_id,
            "temp_file_names": uploaded,
            "file_urls": urls,
            "source_file_name": files[0].name,
            "source_file_size": len(files[0].data),
            "matches": [m.model_dump(mode="json") for m in response.matches],
            "status": AnalysisStatus.PENDING.value,
        })
    except Exception:
        await _cleanup_temp(uploaded)
        raise

    log_message("info", f"Analysis {doc['_id']} for payment {payment_id}: {len(response.matches)} match(es)")
    return ProofAnalysis.model_validate(doc)


async def _expected_payments(
    subscriptions: List[Subscription], echeance_date: Optional[str]
) -> List[ExpectedPayment]:
    amounts: Dict[str, float] = {}
    if echeance_date:
        echeances = await mongodb.get_echeances([s.id for s in subscriptions], echeance_date)
        amounts = {e["subscription_id"]: e["coupon_amount"] for e in echeances}

    return [
        ExpectedPayment(
            investor_name=sub.investor_name,
            expected_amount=amounts.get(sub.id, sub.coupon_net),
            subscription_id=sub.id,
            investor_id=sub.investor_id,
        )
        for sub in subscriptions
    ]


def _attach_subscriptions(matches: List[RemoteMatch], subscriptions: List[Subscription]):
    by_id = {s.id: s for s in subscriptions}
    for match in matches:
        sub_id = (match.expected or {}).get("subscriptionId")
        sub = by_id.get(sub_id)
        if sub:
            match.subscription_id = sub.id
            match.investor_id = sub.investor_id


async def analyze_tranche_proof(
    tranche_id: str, files: List[IncomingFile], echeance_date: Optional[str] = None
) -> ProofAnalysis:
    """
    Analyze a proof covering several coupon payments of a tranche.

    Every subscription of the tranche is sent as an expected payment. When
    echeance_date is given, the expected amount is the coupon scheduled on
    that date, else the subscription's net coupon.
    """
    doc = await mongodb.get_tranche(tranche_id)
    if not doc:
        raise NotFoundError(f"Tranche {tranche_id} not found")
    tranche = _as_record(Tranche, doc, "Tranche")
    _check_uploads(files)

    subscriptions = [
        _as_record(Subscription, s, "Subscription")
        for s in await mongodb.get_tranche_subscriptions(tranche_id)
    ]
    if not subscriptions:
        raise InvalidInputError(f"Tranche {tranche_id} has no subscriptions")
    expected = await _expected_payments(subscriptions, echeance_date)

    uploaded: List[str] = []
    try:
        pages = await _to_page_images(files, compress=True)
        urls = await _upload_temp(pages, uploaded)

        response = await analysis_client.get_functions_client().analyze_payment_batch(urls, expected)
        _attach_subscriptions(response.matches, subscriptions)

        doc = await mongodb.insert_proof_analysis({
            "mode": AnalysisMode.TRANCHE.value,
            "tranche_id": tranche_id,
            "project_id": tranche.project_id,
            "echeance_date": echeance_date,
            "temp_file_names": uploaded,
            "file_urls": urls,
            "source_file_name": files[0].name,
            "source_file_size": len(files[0].data),
            "matches": [m.model_dump(mode="json") for m in response.matches],
            "status": AnalysisStatus.PENDING.value,
        })
    except Exception:
        await _cleanup_temp(uploaded)
        raise

    log_message("info", f"Batch analysis {doc['_id']} for tranche {tranche_id}: {len(response.matches)} match(es)")
    return ProofAnalysis.model_validate(doc)


async def _load_pending_analysis(analysis_id: str) -> ProofAnalysis:
    doc = await mongodb.get_proof_analysis(analysis_id)
    if not doc:
        raise NotFoundError(f"Analysis {analysis_id} not found")
    analysis = ProofAnalysis.model_validate(doc)
    if analysis.status != AnalysisStatus.PENDING:
        raise InvalidInputError(f"Analysis {analysis_id} is already {analysis.status.value}")
    return analysis


async def _store_permanent_proof(analysis: ProofAnalysis, payment_id: str, match: RemoteMatch) -> dict:
    """Copy the first temp image to the permanent bucket and record the proof."""
    if not analysis.temp_file_names:
        raise InvalidInputError("Analysis has no stored image")
    permanent_name = f"{payment_id}/{_timestamp_ms()}_{analysis.source_file_name}"
    await storage.copy_file(
        storage.PAYMENT_PROOFS_TEMP_BUCKET,
        analysis.temp_file_names[0],
        storage.PAYMENT_PROOFS_BUCKET,
        permanent_name,
    )
    return await mongodb.insert_payment_proof({
        "payment_id": payment_id,
        "file_url": storage.get_public_url(storage.PAYMENT_PROOFS_BUCKET, permanent_name),
        "file_name": analysis.source_file_name,
        "file_size": analysis.source_file_size,
        "extracted_data": match.payment.model_dump(by_alias=True),
        "confidence": match.confidence,
    })


def _select_matches(analysis: ProofAnalysis, match_indexes: Optional[List[int]]) -> List[RemoteMatch]:
    if match_indexes is None:
        if analysis.mode == AnalysisMode.SINGLE:
            match_indexes = [0]
        else:
            selected = [
                m for m in analysis.matches
                if m.status == RemoteMatchStatus.MATCH and m.subscription_id
            ]
            if not selected:
                raise InvalidInputError("No full match to confirm")
            return selected

    if not match_indexes:
        raise InvalidInputError("No match selected")
    selected = []
    for index in match_indexes:
        if index < 0 or index >= len(analysis.matches):
            raise InvalidInputError(f"Match index {index} out of range")
        selected.append(analysis.matches[index])
    return selected


async def _confirm_single(analysis: ProofAnalysis, match: RemoteMatch) -> dict:
    proof = await _store_permanent_proof(analysis, analysis.payment_id, match)
    await mongodb.update_payment_status(analysis.payment_id, PaymentStatus.PAID.value)
    return {"payment_ids": [analysis.payment_id], "proof_ids": [proof["_id"]]}


def _check_tranche_matches(matches: List[RemoteMatch]):
    for match in matches:
        if not match.subscription_id:
            raise InvalidInputError("A selected match has no subscription")
        if not is_valid_amount(match.payment.amount):
            raise InvalidInputError(
                f"Invalid amount for {match.payment.beneficiary or 'unknown beneficiary'}"
            )


async def _confirm_tranche(analysis: ProofAnalysis, matches: List[RemoteMatch]) -> dict:
    project_doc = await mongodb.get_project(analysis.project_id) if analysis.project_id else None
    project = _as_record(Project, project_doc, "Project") if project_doc else None
    today = date.today().isoformat()

    payment_ids, proof_ids = [], []
    for match in matches:
        # The proof is recorded before the payment so no paid payment exists without one
        payment_id = mongodb.new_id()
        proof = await _store_permanent_proof(analysis, payment_id, match)
        payment = await mongodb.insert_payment({
            "_id": payment_id,
            "payment_ref": generate_payment_ref(),
            "type": "Coupon",
            "project_id": analysis.project_id,
            "tranche_id": analysis.tranche_id,
            "investor_id": match.investor_id,
            "subscription_id": match.subscription_id,
            "org_id": project.org_id if project else None,
            "amount": match.payment.amount,
            "payment_date": today,
            "status": PaymentStatus.PAID.value,
        })
        if analysis.echeance_date:
            await mongodb.mark_echeance_paid(
                match.subscription_id, analysis.echeance_date, payment["_id"], match.payment.amount
            )
        payment_ids.append(payment["_id"])
        proof_ids.append(proof["_id"])

    return {"payment_ids": payment_ids, "proof_ids": proof_ids}


async def confirm_analysis(analysis_id: str, match_indexes: Optional[List[int]] = None) -> dict:
    """
    Confirm matches of a pending analysis.

    Single mode settles the analysed payment with the selected match
    (first match by default). Tranche mode records one paid coupon payment
    per selected match; without explicit indexes every full match linked to
    a subscription is confirmed. Low-confidence matches can still be
    confirmed when selected explicitly.

    A rejected selection leaves the analysis pending and its files in place.
    Once writing has started, temp files are removed whether the
    confirmation succeeds or fails, and a failed confirmation marks the
    analysis as failed so it cannot be confirmed again. Each proof is
    stored before its payment is recorded as paid.

    Returns:
        dict: Created/updated payment ids and proof ids

    Raises:
        NotFoundError: If the analysis does not exist.
        InvalidInputError: If the analysis is not pending or the selection is invalid.
    """
    analysis = await _load_pending_analysis(analysis_id)
    selected = _select_matches(analysis, match_indexes)
    if analysis.mode == AnalysisMode.SINGLE:
        if len(selected) != 1:
            raise InvalidInputError("Exactly one match must be selected for a single payment")
    else:
        _check_tranche_matches(selected)

    forced = [m for m in selected if m.confidence <= LOW_CONFIDENCE]
    if forced:
        log_message("warning", f"Confirming {len(forced)} low-confidence match(es) on analysis {analysis_id}")

    try:
        if analysis.mode == AnalysisMode.SINGLE:
            result = await _confirm_single(analysis, selected[0])
        else:
            result = await _confirm_tranche(analysis, selected)
    except Exception as e:
        log_message("error", f"Confirmation of analysis {analysis_id} failed: {e}")
        await _cleanup_temp(analysis.temp_file_names)
        await mongodb.update_proof_analysis_status(analysis_id, AnalysisStatus.FAILED.value)
        raise

    await _cleanup_temp(analysis.temp_file_names)
    await mongodb.update_proof_analysis_status(analysis_id, AnalysisStatus.CONFIRMED.value)
    log_message("info", f"Analysis {analysis_id} confirmed: {len(result['payment_ids'])} payment(s) settled")
    return result


async def reject_analysis(analysis_id: str) -> dict:
    """Discard a pending analysis and its temp files."""
    analysis = await _load_pending_analysis(analysis_id)
    await _cleanup_temp(analysis.temp_file_names)
    await mongodb.update_proof_analysis_status(analysis_id, AnalysisStatus.REJECTED.value)
    log_message("info", f"Analysis {analysis_id} rejected")
    return {"analysis_id": analysis_id, "removed_files": len(analysis.temp_file_names)}
