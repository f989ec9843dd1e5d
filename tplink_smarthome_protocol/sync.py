#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Blocking wrappers for callers that do not run an asyncio event loop.

    with SyncSmartHomeClient(SmartHomeClient("192.168.1.50")) as client:
        print(client.execute("system", "get_sysinfo"))

Must not be used from a thread that is already running an event loop.
"""

from __future__ import annotations

import asyncio
from contextlib import AbstractContextManager

from .internal_types import *
from .constants import DEFAULT_DISCOVERY_TIMEOUT, DEFAULT_RETRANSMIT_INTERVAL, SMARTHOME_PORT
from .client import SmartHomeClient
from .discovery import SmartHomeDeviceInfo, simple_discover
from .util import DiscoveryTarget

_T = TypeVar('_T')

class SyncSmartHomeClient(AbstractContextManager):
    """Runs SmartHomeClient operations to completion on a private event loop."""

    client: SmartHomeClient
    loop: Optional[asyncio.AbstractEventLoop] = None

    def __init__(self, client: SmartHomeClient) -> None:
        self.client = client

    def _run(self, coro: Awaitable[_T]) -> _T:
        if self.loop is None:
            self.loop = asyncio.new_event_loop()
        return self.loop.run_until_complete(coro)

    def execute(
            self,
            object: str,
            member: str,
            params: Optional[Mapping[str, Jsonable]]=None,
            **kwargs: Jsonable
          ) -> JsonableDict:
        return self._run(self.client.execute(object, member, params, **kwargs))

    def discover(
            self,
            targets: Optional[Iterable[DiscoveryTarget]]=None,
            timeout: float=DEFAULT_DISCOVERY_TIMEOUT,
            retransmit_interval: float=DEFAULT_RETRANSMIT_INTERVAL,
            port: int=SMARTHOME_PORT,
            ignore_errors: bool=False,
          ) -> List[SmartHomeDeviceInfo]:
        """Runs a complete discovery session and returns the devices that answered."""
        return self._run(simple_discover(
            targets,
            timeout=timeout,
            retransmit_interval=retransmit_interval,
            port=port,
            ignore_errors=ignore_errors,
          ))

    def close(self) -> None:
        if self.loop is not None:
            self.loop.close()
            self.loop = None

    def __exit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.close()
        return False
