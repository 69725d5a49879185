from typing import Optional


class UploadServerError(Exception):
    """
    Base class for every error raised by the upload server.
    """


class StartupError(UploadServerError):
    """
    The server could not start serving requests.
    """


class BindError(StartupError):
    pass


class SignalHandlerError(StartupError):
    pass


class ChildReapError(UploadServerError):
    """
    Reaping orphaned children failed for a reason other than "no children left".
    """


class UploadError(UploadServerError):
    """
    Error local to a single upload request.
    """


class InvalidContentType(UploadError):
    pass


class MultipartError(UploadError):
    pass


class BodyReadError(MultipartError):
    pass


class StorageError(UploadError):
    pass


def describe(exc: Optional[BaseException]) -> str:
    """
    Render an exception and its chain of causes, outermost first.
    """
    parts = []
    while exc is not None:
        parts.append(str(exc) or type(exc).__name__)
        exc = exc.__cause__
    return ": ".join(parts)
