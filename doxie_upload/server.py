import asyncio
import contextlib
import logging
import socket
from typing import Iterator, Optional
import uvicorn
from doxie_upload.core.config import Settings
from doxie_upload.core.lifecycle import ProcessLifecycle
from doxie_upload.core.log_config import uvicorn_log_level
from doxie_upload.exceptions import BindError
from doxie_upload.main import create_app

logger = logging.getLogger("server")


class UploadServer(uvicorn.Server):
    """
    uvicorn server that leaves signal handling to a ProcessLifecycle.

    Stopping is requested through should_exit; uvicorn then closes the listening
    sockets and waits for in-flight requests to complete.
    """

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass


def bind_socket(settings: Settings) -> socket.socket:
    """
    Bind and listen on the configured address and port.
    """
    address = str(settings.ADDRESS)
    family = socket.AF_INET6 if settings.ADDRESS.version == 6 else socket.AF_INET
    try:
        return socket.create_server((address, settings.PORT), family=family)
    except OSError as e:
        raise BindError(f"binding {address}:{settings.PORT}") from e


async def serve(settings: Settings, lifecycle: ProcessLifecycle, sock: Optional[socket.socket] = None) -> None:
    """
    Serve uploads until the lifecycle's shutdown signal arrives, then drain gracefully.
    """
    if sock is None:
        sock = bind_socket(settings)
    try:
        lifecycle.install()
    except Exception:
        sock.close()
        raise

    config = uvicorn.Config(
        create_app(settings),
        log_config=None,
        log_level=uvicorn_log_level(settings.VERBOSITY),
        access_log=settings.VERBOSITY >= 2,
    )
    server = UploadServer(config)

    serving = asyncio.create_task(server.serve(sockets=[sock]))
    shutdown = asyncio.create_task(lifecycle.wait_for_shutdown_signal())
    done, _ = await asyncio.wait({serving, shutdown}, return_when=asyncio.FIRST_COMPLETED)

    if shutdown in done:
        logger.info("Shutting down, waiting for in-flight requests")
        server.should_exit = True
        await serving
    else:
        shutdown.cancel()
        serving.result()
