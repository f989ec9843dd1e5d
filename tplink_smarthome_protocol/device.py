#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SmartHomeDevice -- A device assembled from the capabilities that match its system type.

    device = await SmartHomeDevice.connect("192.168.1.50")
    if device.system_type.is_plug:
        await device.relay.set_output(OutputState.ON)
"""

from __future__ import annotations

from .internal_types import *
from .constants import SMARTHOME_PORT, PROTOCOL_UDP
from .client import SmartHomeClient
from .exceptions import CapabilityNotSupportedError
from .system_info import SystemInfo, SystemType
from .timezone import TimezoneCache
from .capabilities import (
    SystemCapability,
    RelayCapability,
    EnergyMeterCapability,
    TimeCapability,
    CloudCapability,
    NetworkCapability,
  )

class SmartHomeDevice:
    client: SmartHomeClient
    system_type: SystemType

    system: SystemCapability
    time: TimeCapability
    cloud: CloudCapability
    network: NetworkCapability

    _relay: Optional[RelayCapability] = None
    _energy_meter: Optional[EnergyMeterCapability] = None

    system_info: Optional[SystemInfo] = None
    """The system information read by connect(), if the device was created that way."""

    def __init__(
            self,
            client: SmartHomeClient,
            system_type: SystemType=SystemType.UNKNOWN,
            timezone_cache: Optional[TimezoneCache]=None,
          ) -> None:
        self.client = client
        self.system_type = system_type
        self.system = SystemCapability(client)
        self.time = TimeCapability(client, timezone_cache=timezone_cache)
        self.cloud = CloudCapability(client)
        self.network = NetworkCapability(client)
        if system_type.is_plug:
            self._relay = RelayCapability(client)
        if system_type.has_energy_meter:
            self._energy_meter = EnergyMeterCapability(client)

    @classmethod
    async def connect(
            cls,
            host: str,
            protocol: str=PROTOCOL_UDP,
            port: int=SMARTHOME_PORT,
            timeout: Optional[float]=None,
            timezone_cache: Optional[TimezoneCache]=None,
          ) -> SmartHomeDevice:
        """Creates a client for `host`, reads its system information, and returns
        a device with the matching capabilities."""
        client = SmartHomeClient(host, protocol=protocol, port=port, timeout=timeout)
        return await cls.from_client(client, timezone_cache=timezone_cache)

    @classmethod
    async def from_client(
            cls,
            client: SmartHomeClient,
            timezone_cache: Optional[TimezoneCache]=None,
          ) -> SmartHomeDevice:
        system_info = await SystemCapability(client).get_system_info()
        device = cls(client, system_info.system_type, timezone_cache=timezone_cache)
        device.system_info = system_info
        return device

    @property
    def has_relay(self) -> bool:
        return self._relay is not None

    @property
    def has_energy_meter(self) -> bool:
        return self._energy_meter is not None

    @property
    def relay(self) -> RelayCapability:
        if self._relay is None:
            raise CapabilityNotSupportedError(f"A {self.system_type.name} device has no relay")
        return self._relay

    @property
    def energy_meter(self) -> EnergyMeterCapability:
        if self._energy_meter is None:
            raise CapabilityNotSupportedError(f"A {self.system_type.name} device has no energy meter")
        return self._energy_meter

    def __str__(self) -> str:
        name = self.client.host if self.system_info is None else self.system_info.name
        return f"SmartHomeDevice({self.system_type.name} {name})"

    def __repr__(self) -> str:
        return str(self)
