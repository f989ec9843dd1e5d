from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import ScriptedTransport
from tplink_smarthome_protocol import (
    ArgumentError,
    CalibrationInfo,
    CapabilityNotSupportedError,
    CloudCapability,
    EnergyMeterCapability,
    FirmwareUpdateInProgressError,
    NetworkCapability,
    OutputState,
    RelayCapability,
    SmartHomeClient,
    SmartHomeDevice,
    SmartHomeError,
    SystemCapability,
    SystemType,
    TimeCapability,
    TimezoneCache,
    WirelessNetworkNotFoundError,
)

SYSINFO = {
    "err_code": 0,
    "alias": "Lamp",
    "deviceId": "8006ABCD",
    "model": "HS110(EU)",
    "sw_ver": "1.2.5",
    "type": "IOT.SMARTPLUGSWITCH",
    "feature": "TIM:ENE",
    "latitude_i": 521000,
    "longitude_i": 43000,
    "relay_state": 0,
    "updating": 0,
}

PACIFIC = {"err_code": 0, "index": 6, "tz_str": "PST8PDT,M3.2.0,M11.1.0"}


def make_client(results):
    transport = ScriptedTransport(results)
    return SmartHomeClient(transport=transport), transport


class TestSystemCapability:
    @pytest.mark.asyncio
    async def test_get_system_info(self):
        client, _ = make_client({"system.get_sysinfo": SYSINFO})
        info = await SystemCapability(client).get_system_info()
        assert info.name == "Lamp"
        assert info.latitude == Decimal("52.1")
        assert info.system_type == SystemType.PLUG_WITH_ENERGY_METER

    @pytest.mark.asyncio
    async def test_set_name_and_reboot(self):
        client, transport = make_client({"system.set_dev_alias": {}, "system.reboot": {}})
        system = SystemCapability(client)
        await system.set_name("Desk")
        await system.reboot()
        assert transport.sent("system", "set_dev_alias") == [{"alias": "Desk"}]
        assert transport.sent("system", "reboot") == [{"delay": 1}]

    @pytest.mark.asyncio
    async def test_flash_firmware(self):
        ratios = iter([40, 100])
        client, transport = make_client({
            "system.get_sysinfo": SYSINFO,
            "system.download_firmware": {},
            "system.get_download_state": lambda: {"ratio": next(ratios)},
            "system.flash_firmware": {},
        })
        await SystemCapability(client).flash_firmware("http://example.invalid/fw.bin", poll_interval=0)
        sequence = [next(iter(next(iter(c.values())))) for c in transport.commands]
        assert sequence == [
            "get_sysinfo", "download_firmware", "get_download_state", "get_download_state", "flash_firmware"]
        assert transport.sent("system", "download_firmware") == [{"url": "http://example.invalid/fw.bin"}]

    @pytest.mark.asyncio
    async def test_flash_firmware_while_updating(self):
        client, transport = make_client({"system.get_sysinfo": dict(SYSINFO, updating=1)})
        with pytest.raises(FirmwareUpdateInProgressError):
            await SystemCapability(client).flash_firmware("http://example.invalid/fw.bin", poll_interval=0)
        assert transport.sent("system", "download_firmware") == []


class TestRelayCapability:
    @pytest.mark.asyncio
    async def test_get_and_set_output(self):
        client, transport = make_client({"system.get_sysinfo": SYSINFO, "system.set_relay_state": {}})
        relay = RelayCapability(client)
        assert await relay.get_output() == OutputState.OFF
        await relay.set_output(OutputState.ON)
        assert transport.sent("system", "set_relay_state") == [{"state": 1}]


class TestEnergyMeterCapability:
    @pytest.mark.asyncio
    async def test_calibration(self):
        client, transport = make_client({
            "emeter.get_vgain_igain": {"err_code": 0, "vgain": 13462, "igain": 16835},
            "emeter.set_vgain_igain": {},
        })
        meter = EnergyMeterCapability(client)
        calibration = await meter.get_calibration()
        assert calibration == CalibrationInfo(13462, 16835)
        await meter.set_calibration(CalibrationInfo(1, 2))
        assert transport.sent("emeter", "set_vgain_igain") == [{"vgain": 1, "igain": 2}]

    @pytest.mark.asyncio
    async def test_consumption(self):
        client, _ = make_client({
            "emeter.get_realtime": {"err_code": 0, "power": 12.5, "voltage": 230.1, "current": 0.054},
        })
        consumption = await EnergyMeterCapability(client).get_consumption()
        assert consumption.power == Decimal("12.5")
        assert consumption.voltage == Decimal("230.1")
        assert consumption.current == Decimal("0.054")


class TestTimeCapability:
    @pytest.mark.asyncio
    async def test_get_time_in_device_timezone(self):
        cache = TimezoneCache()
        client, _ = make_client({
            "time.get_timezone": PACIFIC,
            "time.get_time": {"err_code": 0, "year": 2024, "month": 7, "mday": 4, "hour": 9, "min": 30, "sec": 15},
        })
        device_time = await TimeCapability(client, timezone_cache=cache).get_time()
        assert device_time.replace(tzinfo=None) == datetime(2024, 7, 4, 9, 30, 15)
        assert device_time.utcoffset() == timedelta(hours=-7)
        assert cache.get(6) is not None

    @pytest.mark.asyncio
    async def test_timezone_is_cached_per_index(self):
        cache = TimezoneCache()
        client, _ = make_client({"time.get_timezone": PACIFIC})
        time_capability = TimeCapability(client, timezone_cache=cache)
        first = await time_capability.get_timezone()
        second = await time_capability.get_timezone()
        assert first is second
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_set_time_converts_to_device_timezone(self):
        client, transport = make_client({"time.get_timezone": PACIFIC, "time.set_timezone": {}})
        await TimeCapability(client, timezone_cache=TimezoneCache()).set_time(
            datetime(2024, 1, 15, 20, 0, 0, tzinfo=timezone.utc))
        assert transport.sent("time", "set_timezone") == [
            {"year": 2024, "month": 1, "mday": 15, "hour": 12, "min": 0, "sec": 0, "index": 6}]

    @pytest.mark.asyncio
    async def test_set_time_requires_aware_datetime(self):
        client, transport = make_client({"time.get_timezone": PACIFIC})
        with pytest.raises(ArgumentError):
            await TimeCapability(client, timezone_cache=TimezoneCache()).set_time(datetime(2024, 1, 15, 20, 0, 0))
        assert transport.commands == []


class TestCloudCapability:
    @pytest.mark.asyncio
    async def test_bound(self):
        client, _ = make_client({"cnCloud.get_info": {"err_code": 0, "binded": 1, "username": "me@example.com"}})
        info = await CloudCapability(client).get_cloud_info()
        assert info.username == "me@example.com"
        assert info.is_bound

    @pytest.mark.asyncio
    async def test_unbound(self):
        client, _ = make_client({"cnCloud.get_info": {"err_code": 0, "binded": 0, "username": ""}})
        info = await CloudCapability(client).get_cloud_info()
        assert info.username is None

    @pytest.mark.asyncio
    async def test_set_credentials(self):
        client, transport = make_client({"cnCloud.bind": {}})
        await CloudCapability(client).set_cloud_credentials("me@example.com", "secret")
        assert transport.sent("cnCloud", "bind") == [{"username": "me@example.com", "password": "secret"}]


class TestNetworkCapability:
    SCAN = {"err_code": 0, "ap_list": [{"ssid": "Guest", "key_type": 0}, {"ssid": "Home", "key_type": 3}]}

    @pytest.mark.asyncio
    async def test_matches_ssid_case_insensitively(self):
        client, transport = make_client({"netif.get_scaninfo": self.SCAN, "netif.set_stainfo": {}})
        await NetworkCapability(client).set_wireless_credentials("home", "pw")
        assert transport.sent("netif", "get_scaninfo") == [{"refresh": 1}]
        assert transport.sent("netif", "set_stainfo") == [{"ssid": "Home", "password": "pw", "key_type": 3}]

    @pytest.mark.asyncio
    async def test_network_not_in_range(self):
        client, transport = make_client({"netif.get_scaninfo": self.SCAN})
        with pytest.raises(WirelessNetworkNotFoundError) as exc_info:
            await NetworkCapability(client).set_wireless_credentials("Office", "pw")
        assert isinstance(exc_info.value, KeyError)
        assert isinstance(exc_info.value, SmartHomeError)
        assert transport.sent("netif", "set_stainfo") == []


class TestSmartHomeDevice:
    @pytest.mark.asyncio
    async def test_energy_meter_plug(self):
        client, _ = make_client({"system.get_sysinfo": SYSINFO})
        device = await SmartHomeDevice.from_client(client)
        assert device.system_type == SystemType.PLUG_WITH_ENERGY_METER
        assert device.system_info is not None and device.system_info.name == "Lamp"
        assert isinstance(device.relay, RelayCapability)
        assert isinstance(device.energy_meter, EnergyMeterCapability)

    @pytest.mark.asyncio
    async def test_plain_plug_has_no_energy_meter(self):
        client, _ = make_client({"system.get_sysinfo": dict(SYSINFO, feature="TIM")})
        device = await SmartHomeDevice.from_client(client)
        assert device.system_type == SystemType.PLUG
        assert device.has_relay
        assert not device.has_energy_meter
        with pytest.raises(CapabilityNotSupportedError):
            device.energy_meter

    def test_bulb_has_common_capabilities_only(self):
        client, _ = make_client({})
        device = SmartHomeDevice(client, SystemType.BULB)
        assert isinstance(device.system, SystemCapability)
        assert isinstance(device.time, TimeCapability)
        assert isinstance(device.cloud, CloudCapability)
        assert isinstance(device.network, NetworkCapability)
        with pytest.raises(CapabilityNotSupportedError):
            device.relay
