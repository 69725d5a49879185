import logging
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse, Response
from doxie_upload.api.dependencies import get_upload_service
from doxie_upload.exceptions import InvalidContentType
from doxie_upload.schemas import NoFileField, Stored
from doxie_upload.services.upload_service import UploadService

logger = logging.getLogger("upload_router")

router = APIRouter(tags=["upload"])

# Scanners post to whatever URL they are configured with
UPLOAD_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/{path:path}", methods=UPLOAD_METHODS, response_class=PlainTextResponse)
async def upload_file(
    request: Request,
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Store the "file" field of a multipart/form-data request under the upload root.
    """
    try:
        result = await upload_service.store(request.headers.get("content-type"), request.stream())
    except InvalidContentType as e:
        logger.debug(f"Rejecting request: {str(e)}")
        return PlainTextResponse(
            "Expecting multipart/form-data",
            status_code=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(result, Stored):
        return PlainTextResponse(f"Uploaded {result.path}", status_code=status.HTTP_200_OK)

    if isinstance(result, NoFileField):
        return PlainTextResponse("No file in request", status_code=status.HTTP_400_BAD_REQUEST)

    # Failure: the cause has been logged by the service
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
