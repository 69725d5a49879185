import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from typing import Dict, Optional, Type
from doxie_upload.exceptions import ChildReapError, SignalHandlerError

logger = logging.getLogger("lifecycle")


class ProcessLifecycle(ABC):
    """
    How this process is told to stop, and what it releases before exiting.

    The shutdown signal is delivered through the running event loop, so waiting
    for it never blocks the accept loop or in-flight requests.
    """

    shutdown_signal: signal.Signals

    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown: Optional[asyncio.Event] = None

    def install(self) -> None:
        """
        Register the shutdown signal handler on the running event loop.
        """
        loop = asyncio.get_running_loop()
        shutdown = asyncio.Event()
        try:
            loop.add_signal_handler(self.shutdown_signal, self._on_shutdown_signal)
        except (ValueError, RuntimeError, NotImplementedError) as e:
            raise SignalHandlerError(f"installing {self.shutdown_signal.name} handler") from e
        self._loop = loop
        self._shutdown = shutdown

    def _on_shutdown_signal(self) -> None:
        logger.debug(f"{self.shutdown_signal.name} received")
        # A second signal gets the default disposition
        self._loop.remove_signal_handler(self.shutdown_signal)
        self._shutdown.set()

    async def wait_for_shutdown_signal(self) -> None:
        if self._shutdown is None:
            self.install()
        await self._shutdown.wait()

    @abstractmethod
    def cleanup(self) -> None:
        """
        Release process-level resources once the listener has stopped.
        """


class HostLifecycle(ProcessLifecycle):
    """
    Foreground service stopped with an interactive interrupt.
    """

    shutdown_signal = signal.SIGINT

    def cleanup(self) -> None:
        pass


class ContainerLifecycle(ProcessLifecycle):
    """
    Init process (PID 1) of a minimal container.

    Stopped with SIGTERM, and responsible for reaping the orphaned children it
    inherits so they do not linger as zombies.
    """

    shutdown_signal = signal.SIGTERM

    def cleanup(self) -> None:
        logger.debug("Reaping orphaned children")
        while True:
            try:
                pid, status = os.wait()
            except ChildProcessError:
                return
            except OSError as e:
                raise ChildReapError("waiting for child processes") from e
            logger.debug(f"Child {pid} exited with status {os.waitstatus_to_exitcode(status)}")


LIFECYCLES: Dict[str, Type[ProcessLifecycle]] = {
    "host": HostLifecycle,
    "container": ContainerLifecycle,
}


def get_lifecycle(name: str) -> ProcessLifecycle:
    try:
        return LIFECYCLES[name]()
    except KeyError:
        raise ValueError(f"Unknown lifecycle {name!r}") from None
