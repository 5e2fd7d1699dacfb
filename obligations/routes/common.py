import traceback
from datetime import date, datetime
from enum import Enum

from bson import ObjectId
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from obligations.interactors.reconciliation import IncomingFile
from obligations.utils.errors import (
    AnalysisServiceError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from obligations.utils.logger import log_message


def serialize_for_json(obj):
    """
    Recursively convert datetime, ObjectId and pydantic objects for JSON serialization.

    Args:
        obj: Object to serialize (dict, list, model, datetime, ObjectId, or other types)

    Returns:
        JSON-serializable object
    """
    if isinstance(obj, BaseModel):
        return serialize_for_json(obj.model_dump())
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, dict):
        return {key: serialize_for_json(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]
    return obj


def create_response(success: bool, message: str, data=None, code=status.HTTP_200_OK):
    """Factory to create consistent JSON API responses."""
    serialized_data = serialize_for_json(data) if data is not None else None

    return JSONResponse(
        content={
            "succeeded": success,
            "message": message,
            "data": serialized_data,
            "status_code": code,
        },
        status_code=code,
    )


def error_response(exc: Exception, action: str):
    """Map a service exception to an error response."""
    if isinstance(exc, NotFoundError):
        return create_response(False, str(exc), code=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, InvalidInputError):
        return create_response(False, str(exc), code=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, (StorageError, AnalysisServiceError)):
        log_message("error", f"{action} failed: {exc}")
        return create_response(False, str(exc), code=status.HTTP_502_BAD_GATEWAY)

    log_message("error", f"{action} failed: {exc}")
    log_message("error", f"Traceback: {traceback.format_exc()}")
    return create_response(
        False, f"{action} failed: {exc}", code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


async def read_uploads(files) -> list:
    """Read uploaded files into memory."""
    incoming = []
    for f in files:
        incoming.append(IncomingFile(
            name=f.filename or "",
            content_type=f.content_type or "",
            data=await f.read(),
        ))
    return incoming
