from fastapi import Request
from doxie_upload.services.upload_service import UploadService


# Dependency to get the UploadService instance
def get_upload_service(request: Request) -> UploadService:
    """
    Dependency to get an UploadService writing under the application's upload root.
    """
    return UploadService(request.app.state.settings.ROOT)
