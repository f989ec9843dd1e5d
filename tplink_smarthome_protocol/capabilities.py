#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Device capabilities. Each capability is a small set of operations built on
SmartHomeClient.execute(); a device exposes the capabilities that match its
system type (see device.SmartHomeDevice).
"""

from __future__ import annotations

import asyncio
from datetime import datetime, tzinfo

from .internal_types import *
from .pkg_logging import logger
from .client import SmartHomeClient
from .exceptions import (
    ArgumentError,
    DataError,
    FirmwareUpdateInProgressError,
    WirelessNetworkNotFoundError,
  )
from .models import (
    OutputState,
    CalibrationInfo,
    ConsumptionInfo,
    CloudInfo,
    get_int_field,
    get_str_field,
  )
from .system_info import SystemInfo
from .timezone import TimezoneCache, default_timezone_cache, parse_posix_tz

DOWNLOAD_COMPLETE_RATIO = 100

class Capability:
    """Base class for capabilities; holds the client used to execute commands."""

    client: SmartHomeClient

    def __init__(self, client: SmartHomeClient) -> None:
        self.client = client

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.client})"

class SystemCapability(Capability):
    async def get_system_info(self) -> SystemInfo:
        return SystemInfo.from_json(await self.client.execute("system", "get_sysinfo"))

    async def set_name(self, name: str) -> None:
        await self.client.execute("system", "set_dev_alias", alias=name)

    async def reboot(self, delay: int=1) -> None:
        """Reboots the device after `delay` seconds."""
        await self.client.execute("system", "reboot", delay=delay)

    async def flash_firmware(self, url: str, poll_interval: float=1.0) -> None:
        """Has the device download firmware from `url`, waits for the download to finish,
        then flashes it.

        Raises FirmwareUpdateInProgressError if the device is already updating.
        """
        sysinfo = await self.client.execute("system", "get_sysinfo")
        if sysinfo.get('updating', 0) not in (0, None):
            raise FirmwareUpdateInProgressError("The device is already updating")
        await self.client.execute("system", "download_firmware", url=url)
        while True:
            await asyncio.sleep(poll_interval)
            state = await self.client.execute("system", "get_download_state")
            ratio = get_int_field(state, 'ratio')
            logger.debug(f"Firmware download on {self.client} is {ratio}% complete")
            if ratio >= DOWNLOAD_COMPLETE_RATIO:
                break
        await self.client.execute("system", "flash_firmware")

class RelayCapability(Capability):
    async def get_output(self) -> OutputState:
        sysinfo = await self.client.execute("system", "get_sysinfo")
        relay_state = get_int_field(sysinfo, 'relay_state')
        try:
            return OutputState(relay_state)
        except ValueError as e:
            raise DataError(f"Unrecognized relay_state: {relay_state}") from e

    async def set_output(self, state: OutputState) -> None:
        await self.client.execute("system", "set_relay_state", state=int(state))

class EnergyMeterCapability(Capability):
    async def get_calibration(self) -> CalibrationInfo:
        return CalibrationInfo.from_json(await self.client.execute("emeter", "get_vgain_igain"))

    async def set_calibration(self, calibration: CalibrationInfo) -> None:
        await self.client.execute("emeter", "set_vgain_igain", calibration.to_json())

    async def get_consumption(self) -> ConsumptionInfo:
        return ConsumptionInfo.from_json(await self.client.execute("emeter", "get_realtime"))

class TimeCapability(Capability):
    """Reads and sets the device clock in the device's own timezone."""

    timezone_cache: TimezoneCache

    def __init__(self, client: SmartHomeClient, timezone_cache: Optional[TimezoneCache]=None) -> None:
        super().__init__(client)
        self.timezone_cache = default_timezone_cache if timezone_cache is None else timezone_cache

    async def _get_timezone_and_index(self) -> Tuple[tzinfo, int]:
        result = await self.client.execute("time", "get_timezone")
        index = get_int_field(result, 'index')
        tz = self.timezone_cache.get(index)
        if tz is None:
            tz_str = get_str_field(result, 'tz_str')
            tz = self.timezone_cache.get_or_add(index, lambda: parse_posix_tz(tz_str))
        return tz, index

    async def get_timezone(self) -> tzinfo:
        tz, _ = await self._get_timezone_and_index()
        return tz

    async def get_time(self) -> datetime:
        """Returns the device's local time as an aware datetime."""
        tz = await self.get_timezone()
        result = await self.client.execute("time", "get_time")
        try:
            return datetime(
                get_int_field(result, 'year'),
                get_int_field(result, 'month'),
                get_int_field(result, 'mday'),
                get_int_field(result, 'hour'),
                get_int_field(result, 'min'),
                get_int_field(result, 'sec'),
                tzinfo=tz,
              )
        except ValueError as e:
            raise DataError(f"The device has reported an invalid time: {e}") from e

    async def set_time(self, time: datetime) -> None:
        """Sets the device clock. `time` must be timezone-aware; it is converted to the
        device's timezone before being sent."""
        if time.tzinfo is None or time.utcoffset() is None:
            raise ArgumentError("set_time requires a timezone-aware datetime")
        tz, index = await self._get_timezone_and_index()
        local = time.astimezone(tz)
        await self.client.execute(
            "time",
            "set_timezone",
            year=local.year,
            month=local.month,
            mday=local.day,
            hour=local.hour,
            min=local.minute,
            sec=local.second,
            index=index,
          )

class CloudCapability(Capability):
    async def get_cloud_info(self) -> CloudInfo:
        return CloudInfo.from_json(await self.client.execute("cnCloud", "get_info"))

    async def set_cloud_credentials(self, username: str, password: str) -> None:
        await self.client.execute("cnCloud", "bind", username=username, password=password)

class NetworkCapability(Capability):
    async def set_wireless_credentials(self, ssid: str, password: str) -> None:
        """Joins the device to a wireless network it can currently see.

        The SSID is matched case-insensitively against a fresh scan, and the access
        point's reported key type is used. Raises WirelessNetworkNotFoundError if the
        network is not in range.
        """
        scan = await self.client.execute("netif", "get_scaninfo", refresh=1)
        ap_list = scan.get('ap_list')
        if not isinstance(ap_list, list):
            raise DataError("The device has sent an invalid scan result: missing ap_list")
        for ap in ap_list:
            if not isinstance(ap, dict):
                continue
            ap_ssid = ap.get('ssid')
            if isinstance(ap_ssid, str) and ap_ssid.lower() == ssid.lower():
                key_type = get_int_field(ap, 'key_type')
                logger.debug(f"Joining {self.client} to '{ap_ssid}' with key_type={key_type}")
                await self.client.execute("netif", "set_stainfo", ssid=ap_ssid, password=password, key_type=key_type)
                return
        raise WirelessNetworkNotFoundError(f"The device is not in range of wireless network '{ssid}'")
