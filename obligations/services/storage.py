"""
Storage Service

Named buckets for proof files, backed by GridFS on the MongoDB deployment.
Objects are addressed by name inside a bucket and exposed through public
URLs of the form <PUBLIC_BASE_URL>/storage/<bucket>/<name>.
"""

import os
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote, unquote

from dotenv import load_dotenv
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorGridFSBucket

from obligations.services.mongodb import get_database
from obligations.utils.errors import StorageError
from obligations.utils.logger import log_message

load_dotenv()

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8027").rstrip("/")
PAYMENT_PROOFS_BUCKET = os.getenv("STORAGE_BUCKET_PAYMENT_PROOFS", "payment-proofs")
PAYMENT_PROOFS_TEMP_BUCKET = os.getenv("STORAGE_BUCKET_PAYMENT_PROOFS_TEMP", "payment-proofs-temp")

KNOWN_BUCKETS = (PAYMENT_PROOFS_BUCKET, PAYMENT_PROOFS_TEMP_BUCKET)

# bucket name -> (database it was opened on, GridFS bucket)
_buckets: Dict[str, Tuple[Any, AsyncIOMotorGridFSBucket]] = {}


def get_bucket(bucket: str) -> AsyncIOMotorGridFSBucket:
    """
    Get the GridFS bucket behind a storage bucket name.

    Raises:
        StorageError: If the bucket is not one of the configured buckets.
    """
    if bucket not in KNOWN_BUCKETS:
        raise StorageError(f"Unknown storage bucket: {bucket}")
    db = get_database()
    cached = _buckets.get(bucket)
    if cached is None or cached[0] is not db:
        _buckets[bucket] = (db, AsyncIOMotorGridFSBucket(db, bucket_name=bucket))
    return _buckets[bucket][1]


def clear_bucket_cache():
    """Forget opened GridFS buckets, e.g. when the MongoDB connection closes."""
    _buckets.clear()


async def _find_file(bucket: str, name: str) -> Optional[dict]:
    cursor = get_bucket(bucket).find({"filename": name}, limit=1)
    files = await cursor.to_list(length=1)
    return files[0] if files else None


async def upload_file(bucket: str, name: str, data: bytes, content_type: str) -> str:
    """
    Store an object. Existing objects are never overwritten.

    Args:
        bucket: Bucket name
        name: Object path inside the bucket
        data: Object content
        content_type: MIME type recorded with the object

    Returns:
        str: Object name

    Raises:
        StorageError: If the name is already taken.
    """
    if await _find_file(bucket, name) is not None:
        raise StorageError(f"Object already exists: {bucket}/{name}")

    await get_bucket(bucket).upload_from_stream(
        name, data, metadata={"contentType": content_type}
    )
    log_message("info", f"Uploaded {bucket}/{name} ({len(data)} bytes)")
    return name


async def download_file(bucket: str, name: str) -> bytes:
    try:
        stream = await get_bucket(bucket).open_download_stream_by_name(name)
    except NoFile as e:
        raise StorageError(f"Object not found: {bucket}/{name}") from e
    return await stream.read()


async def get_content_type(bucket: str, name: str) -> str:
    file_doc = await _find_file(bucket, name)
    if file_doc is None:
        raise StorageError(f"Object not found: {bucket}/{name}")
    metadata = file_doc.get("metadata") or {}
    return metadata.get("contentType", "application/octet-stream")


async def remove_files(bucket: str, names: Iterable[str]) -> List[str]:
    """
    Delete objects by name. Names that do not exist are skipped.

    Returns:
        List[str]: Names actually removed
    """
    removed = []
    gridfs_bucket = get_bucket(bucket)
    for name in names:
        cursor = gridfs_bucket.find({"filename": name})
        async for file_doc in cursor:
            await gridfs_bucket.delete(file_doc["_id"])
            removed.append(name)
    if removed:
        log_message("info", f"Removed {len(removed)} object(s) from {bucket}")
    return removed


async def copy_file(
    source_bucket: str, source_name: str, target_bucket: str, target_name: str
) -> str:
    """Copy an object between buckets, keeping its content type."""
    data = await download_file(source_bucket, source_name)
    content_type = await get_content_type(source_bucket, source_name)
    return await upload_file(target_bucket, target_name, data, content_type)


def get_public_url(bucket: str, name: str) -> str:
    return f"{PUBLIC_BASE_URL}/storage/{bucket}/{quote(name)}"


def path_from_public_url(url: str, bucket: str) -> Optional[str]:
    """
    Recover the object name from a public URL.

    Returns None when the URL does not point into the given bucket.
    """
    marker = f"/storage/{bucket}/"
    if not url or marker not in url:
        return None
    name = url.split(marker, 1)[1].split("?", 1)[0]
    return unquote(name) or None
