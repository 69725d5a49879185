from collections import deque
from typing import AsyncIterable, AsyncIterator, Deque, List, Optional, Tuple
import python_multipart
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header
from doxie_upload.exceptions import BodyReadError, InvalidContentType, MultipartError

FORM_DATA = b"multipart/form-data"

# RFC 2046 section 5.1.1
MAX_BOUNDARY_LENGTH = 70

# Parser events, in the order the parser emits them for one part
FIELD = "field"
DATA = "data"
END = "end"


def extract_boundary(content_type: Optional[str]) -> bytes:
    """
    Return the multipart boundary named by a Content-Type header value.

    Raises InvalidContentType unless the value is multipart/form-data with a
    usable boundary.
    """
    if not isinstance(content_type, str) or not content_type.strip():
        raise InvalidContentType("missing Content-Type header")

    media_type, options = parse_options_header(content_type)
    media_type = media_type.strip().lower()
    if media_type != FORM_DATA:
        raise InvalidContentType(f"expected multipart/form-data, got {media_type.decode('latin-1')!r}")

    boundary = {key.lower(): value for key, value in options.items()}.get(b"boundary")
    if not boundary or len(boundary) > MAX_BOUNDARY_LENGTH:
        raise InvalidContentType("missing or invalid multipart boundary")
    return boundary


def _decode(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


class FormField:
    """
    One field of a multipart form, with its data exposed as a single-pass chunk stream.
    """

    def __init__(self, reader: "MultipartReader", name: str, filename: Optional[str], content_type: Optional[str]):
        self.name = name
        self.filename = filename
        self.content_type = content_type
        self._reader = reader
        self._consumed = False

    def __repr__(self) -> str:
        return f"FormField(name={self.name!r}, filename={self.filename!r})"

    async def chunks(self) -> AsyncIterator[bytes]:
        """
        Yield the field's data in arrival order. Can only be called once.
        """
        if self._consumed:
            raise RuntimeError(f'Data of field "{self.name}" has already been read')
        self._consumed = True

        while True:
            event = await self._reader._next_event()
            if event is None:
                raise MultipartError(f'request body ended inside field "{self.name}"')
            kind, payload = event
            if kind == END:
                return
            yield payload

    async def discard(self) -> None:
        """
        Read and drop whatever is left of the field's data.
        """
        if self._consumed:
            return
        async for _ in self.chunks():
            pass


class MultipartReader:
    """
    Lazily decode a multipart/form-data body into its fields.

    The body is an async iterable of byte chunks that is read at most once and
    only as far as the caller pulls; at most one body chunk worth of parsed data
    is held in memory at a time.
    """

    def __init__(self, boundary: bytes, body: AsyncIterable[bytes]):
        self._body = body.__aiter__()
        self._events: Deque[Tuple[str, object]] = deque()
        self._finished = False
        self._current: Optional[FormField] = None

        self._header_field = b""
        self._header_value = b""
        self._headers: List[Tuple[bytes, bytes]] = []

        callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
        }
        self._parser = python_multipart.MultipartParser(boundary, callbacks)

    def __aiter__(self) -> "MultipartReader":
        return self

    async def __anext__(self) -> FormField:
        if self._current is not None:
            await self._current.discard()
            self._current = None

        while True:
            event = await self._next_event()
            if event is None:
                raise StopAsyncIteration
            kind, payload = event
            if kind == FIELD:
                self._current = payload
                return payload

    async def _next_event(self) -> Optional[Tuple[str, object]]:
        while not self._events:
            if self._finished:
                return None
            try:
                chunk = await self._body.__anext__()
            except StopAsyncIteration:
                self._finished = True
                self._feed(None)
                continue
            except Exception as e:
                raise BodyReadError("reading request body") from e
            if chunk:
                self._feed(chunk)
        return self._events.popleft()

    def _feed(self, chunk: Optional[bytes]) -> None:
        try:
            if chunk is None:
                self._parser.finalize()
            else:
                self._parser.write(chunk)
        except MultipartParseError as e:
            raise MultipartError("decoding multipart body") from e

    # Parser callbacks

    def _on_part_begin(self) -> None:
        self._headers = []

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers.append((self._header_field.lower(), self._header_value))
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        headers = dict(self._headers)
        _, options = parse_options_header(headers.get(b"content-disposition"))
        if b"name" not in options:
            raise MultipartError('form field is missing a Content-Disposition "name"')

        filename = options.get(b"filename")
        content_type = headers.get(b"content-type")
        field = FormField(
            self,
            name=_decode(options[b"name"]),
            filename=_decode(filename) if filename is not None else None,
            content_type=_decode(content_type) if content_type is not None else None,
        )
        self._events.append((FIELD, field))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if end > start:
            self._events.append((DATA, bytes(data[start:end])))

    def _on_part_end(self) -> None:
        self._events.append((END, None))
