import logging
from pathlib import Path
from typing import AsyncIterable, Optional
import aiofiles
from uvicorn.logging import TRACE_LOG_LEVEL
from doxie_upload.exceptions import MultipartError, StorageError, UploadError, describe
from doxie_upload.schemas import Failure, NoFileField, Stored, UploadResult
from doxie_upload.utils.file_utils import derive_filename, resolve_upload_path
from doxie_upload.utils.multipart import FormField, MultipartReader, extract_boundary

logger = logging.getLogger("upload_service")

FILE_FIELD = "file"


class UploadService:
    """
    Service to turn one multipart/form-data request body into a stored file.

    Only the first field named "file" is stored; fields before it are read and
    dropped, anything after it is never read. The body is streamed to disk chunk
    by chunk and never held in memory as a whole.
    """

    def __init__(self, root: Path):
        self.root = root

    async def store(self, content_type: Optional[str], body: AsyncIterable[bytes]) -> UploadResult:
        """
        Store the upload carried by a request body.

        Raises InvalidContentType, without reading the body, when the content type
        does not name a multipart boundary.
        """
        boundary = extract_boundary(content_type)

        try:
            async for field in MultipartReader(boundary, body):
                if field.name != FILE_FIELD:
                    logger.debug(f'Ignoring unexpected field "{field.name}"')
                    await field.discard()
                    continue

                filename = await self._write_field(field)
                logger.info(f"Created {filename}")
                return Stored(path=filename)
        except UploadError as e:
            logger.error(f"Upload failed: {describe(e)}")
            return Failure(cause=e)

        return NoFileField()

    async def _write_field(self, field: FormField) -> str:
        filename = derive_filename(field.filename, field.content_type)
        path = resolve_upload_path(self.root, filename)

        created = False
        try:
            async with aiofiles.open(path, "xb") as upload:
                created = True
                async for chunk in field.chunks():
                    logger.log(TRACE_LOG_LEVEL, f"Got field chunk, len: {len(chunk)}")
                    await upload.write(chunk)
        except OSError as e:
            if not created:
                raise StorageError(f"creating file ({path})") from e
            self._discard_partial(path)
            raise StorageError(f"writing file ({path})") from e
        except MultipartError:
            self._discard_partial(path)
            raise

        return filename

    def _discard_partial(self, path: Path) -> None:
        """
        Remove a file this service created but could not finish writing.
        """
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial upload {path}: {str(e)}")
        else:
            logger.info(f"Removed partial upload {path}")
