#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Transports that carry a single command to a TP-Link Smart Home device and return its response.

Two variants are provided:

  TcpSmartHomeTransport -- Opens a new connection for every command (the device closes the
                           connection after one exchange). Messages are prefixed with a 4-byte
                           big-endian body length.
  UdpSmartHomeTransport -- Sends the unframed message as one datagram, waits for a reply, and
                           resends exactly once if no reply arrives in time.
"""

from __future__ import annotations


import asyncio
import socket
from abc import ABC, abstractmethod

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    SMARTHOME_PORT,
    LENGTH_HEADER_SIZE,
    MAX_UDP_DATAGRAM_LENGTH,
    DEFAULT_RECEIVE_TIMEOUT,
    DEFAULT_TCP_TIMEOUT,
    PROTOCOL_TCP,
    PROTOCOL_UDP,
  )
from .codec import encode_text, decode_text, frame, unpack_length_header
from .datagram_socket import SmartHomeDatagramSocket
from .exceptions import ArgumentError, SmartHomeConnectionError, SmartHomeTimeoutError

UDP_SEND_ATTEMPTS = 2
"""The UDP transport sends a command at most this many times: the original send plus one resend."""

class SmartHomeTransport(ABC):
    """Abstract transport that executes one command text and returns the decoded response text."""

    host: str
    """The hostname or IP address of the device."""

    port: int
    """The port the device listens on. Normally 9999."""

    protocol_name: str = ''

    def __init__(self, host: str, port: int=SMARTHOME_PORT) -> None:
        if not host:
            raise ArgumentError("A device host name or IP address is required")
        self.host = host
        self.port = port

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.host}:{self.port})"

    def __repr__(self) -> str:
        return str(self)

    @staticmethod
    def check_command(command: str) -> None:
        if command is None or len(command) == 0:
            raise ArgumentError("Command text must not be empty")

    @abstractmethod
    async def execute(self, command: str) -> str:
        """Sends `command` to the device and returns the decoded response text.

        Raises:
            ArgumentError:            The command is empty or too large to send.
            SmartHomeConnectionError: The transport failed.
            SmartHomeTimeoutError:    No response arrived within the transport's timeout budget.
        """
        raise NotImplementedError()

class TcpSmartHomeTransport(SmartHomeTransport):
    """Connection-oriented transport. A fresh connection is used for each command."""

    protocol_name = PROTOCOL_TCP

    timeout: Optional[float]
    """Seconds allowed for the whole exchange (connect, send and receive). None waits forever."""

    def __init__(self, host: str, port: int=SMARTHOME_PORT, timeout: Optional[float]=DEFAULT_TCP_TIMEOUT) -> None:
        super().__init__(host, port)
        self.timeout = timeout

    async def execute(self, command: str) -> str:
        self.check_command(command)
        request = frame(encode_text(command))
        try:
            return await asyncio.wait_for(self._exchange(request), self.timeout)
        except asyncio.TimeoutError as e:
            raise SmartHomeTimeoutError(f"No response from {self} within {self.timeout} seconds") from e

    async def _exchange(self, request: bytes) -> str:
        logger.debug(f"Connecting to {self}")
        try:
            reader, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            raise SmartHomeConnectionError(f"Unable to connect to {self}: {e}") from e
        try:
            sock = writer.get_extra_info('socket')
            if sock is not None:
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

            logger.debug(f"Writing {len(request)} bytes to {self}")
            writer.write(request)
            await writer.drain()

            header = await self._read_exactly(reader, LENGTH_HEADER_SIZE)
            body_length = unpack_length_header(header)
            body = await self._read_exactly(reader, body_length)
            logger.debug(f"Read {body_length}-byte response body from {self}")
            return decode_text(body)
        except (ConnectionError, OSError) as e:
            if isinstance(e, SmartHomeConnectionError):
                raise
            raise SmartHomeConnectionError(f"Connection to {self} failed: {e}") from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError) as e:
                logger.debug(f"Error while closing connection to {self}: {e}")

    async def _read_exactly(self, reader: asyncio.StreamReader, length: int) -> bytes:
        try:
            return await reader.readexactly(length)
        except asyncio.IncompleteReadError as e:
            raise SmartHomeConnectionError(
                f"The stream was closed by remote party {self} after {len(e.partial)} of {length} bytes") from e

class UdpSmartHomeTransport(SmartHomeTransport):
    """Connectionless transport with a fixed policy of one resend."""

    protocol_name = PROTOCOL_UDP

    receive_timeout: float
    """Seconds to wait for a reply after each send."""

    def __init__(self, host: str, port: int=SMARTHOME_PORT, receive_timeout: float=DEFAULT_RECEIVE_TIMEOUT) -> None:
        super().__init__(host, port)
        self.receive_timeout = receive_timeout

    async def resolve(self) -> Tuple[socket.AddressFamily, HostAndPort]:
        """Resolves the device host to an address family and (ip_address, port)."""
        loop = asyncio.get_running_loop()
        try:
            addrinfos = await loop.getaddrinfo(self.host, self.port, type=socket.SOCK_DGRAM)
        except OSError as e:
            raise SmartHomeConnectionError(f"Unable to resolve {self}: {e}") from e
        family, _, _, _, sockaddr = addrinfos[0]
        return (family, (sockaddr[0], sockaddr[1]))

    async def execute(self, command: str) -> str:
        self.check_command(command)
        request = encode_text(command)
        if len(request) > MAX_UDP_DATAGRAM_LENGTH:
            raise ArgumentError(f"Command of {len(request)} bytes does not fit in a UDP datagram")
        family, addr = await self.resolve()
        async with SmartHomeDatagramSocket(address_family=family) as dgram_socket:
            for attempt in range(UDP_SEND_ATTEMPTS):
                if attempt > 0:
                    logger.debug(f"No response from {self} after {self.receive_timeout} seconds; resending")
                dgram_socket.sendto(request, addr)
                received = await dgram_socket.receive(self.receive_timeout)
                if received is not None:
                    src_addr, data = received
                    logger.debug(f"Received {len(data)}-byte response from {src_addr}")
                    return decode_text(data)
        raise SmartHomeTimeoutError(f"No response from {self} after {UDP_SEND_ATTEMPTS} attempts")

def create_transport(
        host: str,
        protocol: str=PROTOCOL_UDP,
        port: int=SMARTHOME_PORT,
        timeout: Optional[float]=None,
      ) -> SmartHomeTransport:
    """Creates the transport variant named by `protocol` ("udp" or "tcp").

    `timeout` is the per-attempt receive timeout for UDP, or the exchange timeout for TCP.
    If None, the variant's default is used.
    """
    protocol_lower = (protocol or '').lower()
    if protocol_lower == PROTOCOL_UDP:
        return UdpSmartHomeTransport(
            host, port=port, receive_timeout=DEFAULT_RECEIVE_TIMEOUT if timeout is None else timeout)
    if protocol_lower == PROTOCOL_TCP:
        return TcpSmartHomeTransport(
            host, port=port, timeout=DEFAULT_TCP_TIMEOUT if timeout is None else timeout)
    raise ArgumentError(f"Unsupported protocol: {protocol!r}; expected '{PROTOCOL_UDP}' or '{PROTOCOL_TCP}'")
