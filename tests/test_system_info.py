from decimal import Decimal

import pytest

from tplink_smarthome_protocol import DataError, SystemInfo, SystemType


def sysinfo(**overrides):
    result = {
        "alias": "Lamp",
        "deviceId": "8006ABCD",
        "model": "HS100(US)",
        "sw_ver": "1.5.6",
        "type": "IOT.SMARTPLUGSWITCH",
        "feature": "TIM",
        "latitude": 37.77,
        "longitude": -122.42,
    }
    result.update(overrides)
    return result


class TestSystemType:
    def test_plug(self):
        assert SystemType.from_sysinfo(sysinfo()) == SystemType.PLUG

    def test_plug_with_energy_meter(self):
        assert SystemType.from_sysinfo(sysinfo(feature="TIM:ENE")) == SystemType.PLUG_WITH_ENERGY_METER

    def test_bulb_uses_mic_type(self):
        info = sysinfo()
        del info["type"]
        info["mic_type"] = "IOT.SMARTBULB"
        assert SystemType.from_sysinfo(info) == SystemType.BULB

    def test_unrecognized_type(self):
        assert SystemType.from_sysinfo(sysinfo(type="IOT.SOMETHINGNEW")) == SystemType.UNKNOWN

    def test_properties(self):
        assert SystemType.PLUG.is_plug
        assert not SystemType.PLUG.has_energy_meter
        assert SystemType.PLUG_WITH_ENERGY_METER.has_energy_meter
        assert not SystemType.BULB.is_plug


class TestSystemInfo:
    def test_from_json(self):
        info = SystemInfo.from_json(sysinfo())
        assert info.name == "Lamp"
        assert info.id == "8006ABCD"
        assert info.model == "HS100(US)"
        assert info.firmware_version == "1.5.6"
        assert info.latitude == Decimal("37.77")
        assert info.longitude == Decimal("-122.42")
        assert str(info) == "PLUG Lamp"

    def test_fixed_point_location(self):
        info = sysinfo(latitude_i=377700, longitude_i=-1224200)
        del info["latitude"]
        del info["longitude"]
        result = SystemInfo.from_json(info)
        assert result.latitude == Decimal("37.77")
        assert result.longitude == Decimal("-122.42")

    def test_location_optional(self):
        info = sysinfo()
        del info["latitude"]
        del info["longitude"]
        result = SystemInfo.from_json(info)
        assert result.latitude is None
        assert result.longitude is None

    def test_missing_identity_field(self):
        info = sysinfo()
        del info["deviceId"]
        with pytest.raises(DataError):
            SystemInfo.from_json(info)

    def test_to_json(self):
        result = SystemInfo.from_json(sysinfo(feature="TIM:ENE")).to_json()
        assert result["type"] == "plug_with_energy_meter"
        assert result["name"] == "Lamp"
        assert result["latitude"] == pytest.approx(37.77)
