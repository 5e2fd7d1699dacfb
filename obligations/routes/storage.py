from fastapi import APIRouter, status
from fastapi.responses import Response

from obligations.routes.common import create_response, error_response
from obligations.services import storage
from obligations.utils.errors import StorageError

router = APIRouter(prefix="/storage", tags=["Storage"])


@router.get("/{bucket}/{path:path}")
async def get_object(bucket: str, path: str):
    """Serve a stored object so public URLs resolve."""
    try:
        data = await storage.download_file(bucket, path)
        content_type = await storage.get_content_type(bucket, path)
        return Response(content=data, media_type=content_type)
    except StorageError as e:
        return create_response(False, str(e), code=status.HTTP_404_NOT_FOUND)
    except Exception as e:
        return error_response(e, "Reading stored object")
