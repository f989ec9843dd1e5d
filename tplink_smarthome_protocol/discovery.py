#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Discovery of TP-Link Smart Home devices on the local network:

  1. Broadcast a "system.get_sysinfo" request to one or more broadcast addresses on port 9999
  2. Receive and decode the replies of every device that answers
  3. Resend the request whenever the network has been quiet for a while, until the
     discovery session times out
"""

from __future__ import annotations


import asyncio
import datetime
import inspect
import socket
import time

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    SMARTHOME_PORT,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_RETRANSMIT_INTERVAL,
    DISCOVERY_OBJECT,
    DISCOVERY_MEMBER,
    DISCOVERY_REQUEST,
  )
from .codec import encode_text, decode_text
from .response import parse_response
from .system_info import SystemInfo
from .datagram_socket import SmartHomeDatagramSocket
from .exceptions import SmartHomeError, ArgumentError
from .util import DiscoveryTarget, resolve_discovery_targets

class SmartHomeDeviceInfo:
    """A device that answered a discovery request."""

    src_addr: HostAndPort
    """The source address of the reply"""

    system_info: SystemInfo
    """The identity of the device, decoded from the reply"""

    monotonic_time: float
    """The local time (in seconds) since an arbitrary point in the past at which
       the reply was received, as returned by time.monotonic()."""

    utc_time: datetime.datetime
    """The UTC time at which the reply was received."""

    def __init__(self, src_addr: HostAndPort, system_info: SystemInfo) -> None:
        self.src_addr = src_addr
        self.system_info = system_info
        self.monotonic_time = time.monotonic()
        self.utc_time = datetime.datetime.now(datetime.timezone.utc)

    @property
    def host(self) -> str:
        return self.src_addr[0]

    def to_json(self) -> JsonableDict:
        result: JsonableDict = dict(host=self.src_addr[0], port=self.src_addr[1])
        result.update(self.system_info.to_json())
        return result

    def __str__(self) -> str:
        return f"{self.system_info} at {self.src_addr[0]}:{self.src_addr[1]}"

    def __repr__(self) -> str:
        return f"SmartHomeDeviceInfo(src_addr={self.src_addr!r}, system_info={self.system_info!r})"

class SmartHomeDiscoveryRequest(
        AsyncContextManager['SmartHomeDiscoveryRequest'],
        AsyncIterable[SmartHomeDeviceInfo]
      ):
    """An object that manages a single discovery session and all of the received replies
       within an AsyncContextManager/AsyncIterable interface."""

    targets: List[str]
    """The addresses (or host names) the discovery request is sent to"""

    addresses: List[HostAndPort]
    """The resolved destinations of the discovery request; set when the session starts"""

    port: int
    timeout: float
    """The total duration (in seconds) of the discovery session"""

    retransmit_interval: float
    """If nothing is received for this many seconds, the request is sent again"""

    ignore_errors: bool
    """If True, malformed and error replies are logged and skipped rather than raised"""

    dgram_socket: SmartHomeDatagramSocket
    request: bytes
    end_time: float = 0.0
    seen_addrs: Set[HostAndPort]
    num_sends: int = 0
    """The number of times the request has been sent to all targets"""

    def __init__(
            self,
            targets: Optional[Iterable[DiscoveryTarget]]=None,
            timeout: float=DEFAULT_DISCOVERY_TIMEOUT,
            retransmit_interval: float=DEFAULT_RETRANSMIT_INTERVAL,
            port: int=SMARTHOME_PORT,
            ignore_errors: bool=False,
          ):
        """Create an async context manager/iterable that broadcasts a discovery request and returns
        the replies as they arrive.

        Parameters:
            targets:             The broadcast addresses (or networks) to send the request to. Defaults
                                    to ["255.255.255.255"].
            timeout:             The total duration (in seconds) of the session. Defaults to 5 seconds.
            retransmit_interval: The idle time (in seconds) after which the request is sent again.
                                    Defaults to 2 seconds.
            port:                The device port. Defaults to 9999.
            ignore_errors:       If True, replies that cannot be decoded or that carry a device error
                                    are logged and skipped. By default they are raised out of the session.

        Usage:
            async with SmartHomeDiscoveryRequest(...) as discovery_request:
                async for info in discovery_request:
                    print(info.system_info)
                    # It is possible to break out of the loop early if desired
        """
        self.targets = resolve_discovery_targets(targets)
        self.timeout = timeout
        self.retransmit_interval = retransmit_interval
        self.port = port
        self.ignore_errors = ignore_errors
        self.dgram_socket = SmartHomeDatagramSocket(broadcast=True, end_on_error=False)
        self.request = encode_text(DISCOVERY_REQUEST)
        self.addresses = []
        self.seen_addrs = set()

    async def resolve_targets(self) -> List[HostAndPort]:
        """Looks up each target without blocking the event loop. Raises ArgumentError
           if a target cannot be resolved."""
        loop = asyncio.get_running_loop()
        result: List[HostAndPort] = []
        for target in self.targets:
            try:
                addr_infos = await loop.getaddrinfo(
                    target, self.port, family=socket.AF_INET, type=socket.SOCK_DGRAM)
            except socket.gaierror as e:
                raise ArgumentError(f"Unable to resolve discovery target {target!r}: {e}") from e
            sockaddr = addr_infos[0][4]
            addr: HostAndPort = (sockaddr[0], sockaddr[1])
            if addr not in result:
                result.append(addr)
        return result

    def send_request(self) -> None:
        # a failed send to one destination is logged by the socket and does not stop the others
        for addr in self.addresses:
            self.dgram_socket.sendto(self.request, addr)
        self.num_sends += 1

    async def __aenter__(self) -> SmartHomeDiscoveryRequest:
        self.addresses = await self.resolve_targets()
        await self.dgram_socket.__aenter__()
        try:
            self.end_time = time.monotonic() + self.timeout
            self.send_request()
        except BaseException as e:
            # A call to __aenter__ that raises an exception will not be paired with a call to __aexit__
            await self.dgram_socket.__aexit__(type(e), e, e.__traceback__)
            raise
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        return await self.dgram_socket.__aexit__(exc_type, exc, tb)

    def decode_reply(self, src_addr: HostAndPort, data: bytes) -> SmartHomeDeviceInfo:
        text = decode_text(data)
        sysinfo = parse_response(text, f"{DISCOVERY_OBJECT}.{DISCOVERY_MEMBER}")
        return SmartHomeDeviceInfo(src_addr, SystemInfo.from_json(sysinfo))

    async def iter_responses(self) -> AsyncIterator[SmartHomeDeviceInfo]:
        while True:
            remaining_time = self.end_time - time.monotonic()
            if remaining_time <= 0.0:
                break
            received = await self.dgram_socket.receive(min(self.retransmit_interval, remaining_time))
            if received is None:
                if time.monotonic() >= self.end_time:
                    break
                if not self.dgram_socket.has_pending:
                    logger.debug(f"No discovery replies for {self.retransmit_interval} seconds; resending")
                    self.send_request()
                continue
            src_addr, data = received
            if src_addr in self.seen_addrs:
                logger.debug(f"Ignoring repeated discovery reply from {src_addr}")
                continue
            try:
                info = self.decode_reply(src_addr, data)
            except SmartHomeError as e:
                if not self.ignore_errors:
                    raise
                logger.warning(f"Ignoring invalid discovery reply from {src_addr}: {e}")
                continue
            self.seen_addrs.add(src_addr)
            logger.debug(f"Discovered {info}")
            yield info

    def __aiter__(self) -> AsyncIterator[SmartHomeDeviceInfo]:
        return self.iter_responses()

DiscoveryCallback = Callable[[HostAndPort, SystemInfo], Union[None, Awaitable[None]]]
"""Called with (src_addr, system_info) for each discovered device. May be a coroutine function."""

async def discover(
        targets: Optional[Iterable[DiscoveryTarget]],
        on_found: DiscoveryCallback,
        timeout: float=DEFAULT_DISCOVERY_TIMEOUT,
        retransmit_interval: float=DEFAULT_RETRANSMIT_INTERVAL,
        port: int=SMARTHOME_PORT,
        ignore_errors: bool=False,
      ) -> None:
    """Runs a discovery session, invoking on_found for each device that answers.

    Returns when `timeout` seconds have elapsed. Errors raised by on_found propagate.
    """
    async with SmartHomeDiscoveryRequest(
            targets,
            timeout=timeout,
            retransmit_interval=retransmit_interval,
            port=port,
            ignore_errors=ignore_errors,
          ) as discovery_request:
        async for info in discovery_request:
            result = on_found(info.src_addr, info.system_info)
            if inspect.isawaitable(result):
                await result

async def simple_discover(
        targets: Optional[Iterable[DiscoveryTarget]]=None,
        timeout: float=DEFAULT_DISCOVERY_TIMEOUT,
        retransmit_interval: float=DEFAULT_RETRANSMIT_INTERVAL,
        port: int=SMARTHOME_PORT,
        ignore_errors: bool=False,
      ) -> List[SmartHomeDeviceInfo]:
    """A simple discovery that waits for the whole session and returns every device that answered.

       Incremental results can be obtained with SmartHomeDiscoveryRequest or discover().
    """
    results: List[SmartHomeDeviceInfo] = []
    async with SmartHomeDiscoveryRequest(
            targets,
            timeout=timeout,
            retransmit_interval=retransmit_interval,
            port=port,
            ignore_errors=ignore_errors,
          ) as discovery_request:
        async for info in discovery_request:
            results.append(info)
    return results
