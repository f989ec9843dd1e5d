#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SmartHomeDatagramSocket -- An asyncio UDP socket that can:

  1. Send raw datagrams to unicast or broadcast addresses
  2. Queue received datagrams and hand them to a single reader, with an optional timeout

  The socket is an async context manager; the underlying transport and socket are
  closed when the context exits, on every exit path.
"""

from __future__ import annotations


import asyncio
import socket

from .internal_types import *
from .pkg_logging import logger
from .exceptions import SmartHomeConnectionError

MAX_QUEUE_SIZE = 1000

ReceivedDatagram = Tuple[HostAndPort, bytes]
"""A (source_address, raw_data) tuple for a received datagram."""

class _SmartHomeDatagramProtocol(asyncio.DatagramProtocol):
    """An adapter between the asyncio transport and SmartHomeDatagramSocket."""
    dgram_socket: SmartHomeDatagramSocket

    def __init__(self, dgram_socket: SmartHomeDatagramSocket):
        self.dgram_socket = dgram_socket

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        """Called when some datagram is received."""
        self.dgram_socket.datagram_received((addr[0], addr[1]), data)

    def error_received(self, exc: Exception):
        """Called when a send or receive operation raises an OSError.

        (Other than BlockingIOError or InterruptedError.)
        """
        self.dgram_socket.on_transport_error(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """Called when the connection is lost or closed."""
        self.dgram_socket.on_end_of_stream(exc)

class SmartHomeDatagramSocket(AsyncContextManager['SmartHomeDatagramSocket']):
    """
    An async UDP socket bound to an ephemeral local port.

    Usage:
        async with SmartHomeDatagramSocket(broadcast=True) as dgram_socket:
            dgram_socket.sendto(data, ("255.255.255.255", 9999))
            received = await dgram_socket.receive(timeout=2.0)
    """

    address_family: socket.AddressFamily
    """The address family of the socket (AF_INET or AF_INET6)."""

    bind_address: str
    """The local IP address to bind to. '' binds to all interfaces."""

    broadcast: bool
    """If True, SO_BROADCAST is enabled so datagrams can be sent to broadcast addresses."""

    sock: Optional[socket.socket] = None
    """The low-level socket."""

    transport: Optional[asyncio.DatagramTransport] = None
    """The asyncio transport bound to the socket."""

    queue: asyncio.Queue[Optional[ReceivedDatagram]]
    """Received datagrams, in arrival order. A None entry marks the end of the stream."""

    end_on_error: bool
    """If True, an error reported by the transport ends the stream. If False, the error is
       logged and the socket keeps receiving; a failed send to one destination then does
       not affect datagrams from others."""

    eos: bool = False
    eos_exc: Optional[Exception] = None

    def __init__(
            self,
            address_family: socket.AddressFamily=socket.AF_INET,
            bind_address: str='',
            broadcast: bool=False,
            max_queue_size: int=MAX_QUEUE_SIZE,
            end_on_error: bool=True,
          ) -> None:
        self.address_family = address_family
        self.bind_address = bind_address
        self.broadcast = broadcast
        self.end_on_error = end_on_error
        self.queue = asyncio.Queue(max_queue_size)

    def __str__(self) -> str:
        sockname = None if self.sock is None else self.sock.getsockname()
        return f"SmartHomeDatagramSocket({sockname})"

    def __repr__(self) -> str:
        return str(self)

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        sock = socket.socket(self.address_family, socket.SOCK_DGRAM)
        try:
            if self.broadcast:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((self.bind_address, 0))
            sock.setblocking(False)
            untyped_transport, _ = await loop.create_datagram_endpoint(
                lambda: _SmartHomeDatagramProtocol(self),
                sock=sock
              )
        except OSError as e:
            sock.close()
            raise SmartHomeConnectionError(f"Unable to open UDP socket: {e}") from e
        # asyncio datagram transports do not inherit from asyncio.DatagramTransport, though
        # they implement the same interface.
        transport: asyncio.DatagramTransport = untyped_transport # type: ignore[assignment]
        self.sock = sock
        self.transport = transport
        logger.debug(f"Opened {self}")

    def close(self) -> None:
        if self.transport is not None:
            try:
                self.transport.close()
            except Exception as e:
                logger.error(f"Error closing transport on {self}: {e}")
            self.transport = None
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError as e:
                logger.error(f"Error closing socket on {self}: {e}")
            self.sock = None

    def sendto(self, data: bytes, addr: HostAndPort) -> None:
        logger.debug(f"Sending {len(data)}-byte datagram via {self} to {addr}")
        if self.transport is None:
            raise SmartHomeConnectionError(f"Attempt to send on closed {self}")
        self.transport.sendto(data, addr)

    def datagram_received(self, addr: HostAndPort, data: bytes) -> None:
        logger.debug(f"Received {len(data)}-byte datagram on {self} from {addr}")
        if self.eos:
            return
        try:
            self.queue.put_nowait((addr, data))
        except asyncio.QueueFull:
            logger.warning(f"Queue full, dropping datagram from {addr}")

    def on_transport_error(self, exc: Exception) -> None:
        if self.end_on_error:
            self.on_end_of_stream(exc)
        else:
            logger.warning(f"Ignoring transport error on {self}: {exc}")

    def on_end_of_stream(self, exc: Optional[Exception]=None) -> None:
        if exc is not None:
            logger.info(f"Error received from transport {self}: {exc}")
        if not self.eos:
            self.eos = True
            self.eos_exc = exc
            try:
                # wake up any waiting reader
                self.queue.put_nowait(None)
            except asyncio.QueueFull:
                # queue is full so the reader will wake up soon
                pass

    @property
    def has_pending(self) -> bool:
        """True if a received datagram is waiting to be read."""
        return not self.queue.empty()

    def _check_result(self, result: Optional[ReceivedDatagram]) -> ReceivedDatagram:
        if result is None:
            if self.eos_exc is None:
                raise SmartHomeConnectionError(f"{self} was closed")
            raise SmartHomeConnectionError(f"Transport error on {self}: {self.eos_exc}") from self.eos_exc
        return result

    def receive_nowait(self) -> Optional[ReceivedDatagram]:
        """Returns the next queued datagram, or None if none is waiting."""
        try:
            result = self.queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        return self._check_result(result)

    async def receive(self, timeout: Optional[float]=None) -> Optional[ReceivedDatagram]:
        """Waits for the next datagram.

        Returns None if `timeout` seconds elapse first. Raises SmartHomeConnectionError
        if the transport reports an error or is closed.
        """
        if self.has_pending:
            return self.receive_nowait()
        if timeout is not None and timeout <= 0.0:
            return None
        try:
            result = await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        return self._check_result(result)

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.close()
        return False
