#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Device identity information, as reported by the "system.get_sysinfo" command.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from .internal_types import *
from .exceptions import DataError

PLUG_TYPE_NAME = "IOT.SMARTPLUGSWITCH"
BULB_TYPE_NAME = "IOT.SMARTBULB"
ENERGY_METER_FEATURE = "ENE"

FIXED_POINT_LOCATION_SCALE = Decimal(10000)
"""Newer firmware reports latitude_i/longitude_i in units of 1/10000 degree."""

class SystemType(Enum):
    """The capability class of a device."""
    UNKNOWN = "unknown"
    PLUG = "plug"
    PLUG_WITH_ENERGY_METER = "plug_with_energy_meter"
    BULB = "bulb"

    @classmethod
    def from_sysinfo(cls, sysinfo: Mapping[str, Any]) -> SystemType:
        """Infers the capability class from the "type" (or "mic_type") and "feature" fields.

        Unrecognized types map to SystemType.UNKNOWN.
        """
        type_name = sysinfo.get('type', sysinfo.get('mic_type'))
        if type_name == PLUG_TYPE_NAME:
            feature = sysinfo.get('feature')
            if isinstance(feature, str) and ENERGY_METER_FEATURE in feature:
                return cls.PLUG_WITH_ENERGY_METER
            return cls.PLUG
        if type_name == BULB_TYPE_NAME:
            return cls.BULB
        return cls.UNKNOWN

    @property
    def is_plug(self) -> bool:
        return self in (SystemType.PLUG, SystemType.PLUG_WITH_ENERGY_METER)

    @property
    def has_energy_meter(self) -> bool:
        return self == SystemType.PLUG_WITH_ENERGY_METER

def _get_str(sysinfo: Mapping[str, Any], key: str) -> str:
    value = sysinfo.get(key)
    if not isinstance(value, str):
        raise DataError(f"System information field '{key}' is missing or not a string: {value!r}")
    return value

def _get_location(sysinfo: Mapping[str, Any], key: str) -> Optional[Decimal]:
    try:
        if key in sysinfo and sysinfo[key] is not None:
            return Decimal(str(sysinfo[key]))
        fixed_key = f"{key}_i"
        if fixed_key in sysinfo and sysinfo[fixed_key] is not None:
            return Decimal(str(sysinfo[fixed_key])) / FIXED_POINT_LOCATION_SCALE
    except InvalidOperation as e:
        raise DataError(f"System information field '{key}' is not a number") from e
    return None

class SystemInfo:
    """Holds system information about a device."""

    name: str
    """The user-assigned device name ("alias")."""

    id: str
    """The unique device ID ("deviceId")."""

    system_type: SystemType

    model: str

    firmware_version: str
    """The firmware version string ("sw_ver")."""

    latitude: Optional[Decimal]

    longitude: Optional[Decimal]

    raw: JsonableDict
    """The complete get_sysinfo result node, for callers that need other fields."""

    def __init__(
            self,
            name: str,
            id: str,
            system_type: SystemType,
            model: str,
            firmware_version: str,
            latitude: Optional[Decimal]=None,
            longitude: Optional[Decimal]=None,
            raw: Optional[JsonableDict]=None,
          ) -> None:
        self.name = name
        self.id = id
        self.system_type = system_type
        self.model = model
        self.firmware_version = firmware_version
        self.latitude = latitude
        self.longitude = longitude
        self.raw = {} if raw is None else raw

    @classmethod
    def from_json(cls, sysinfo: JsonableDict) -> SystemInfo:
        """Builds a SystemInfo from a get_sysinfo result node.

        Raises DataError if an identity field is missing or malformed.
        """
        return cls(
            name=_get_str(sysinfo, 'alias'),
            id=_get_str(sysinfo, 'deviceId'),
            system_type=SystemType.from_sysinfo(sysinfo),
            model=_get_str(sysinfo, 'model'),
            firmware_version=_get_str(sysinfo, 'sw_ver'),
            latitude=_get_location(sysinfo, 'latitude'),
            longitude=_get_location(sysinfo, 'longitude'),
            raw=sysinfo,
          )

    def to_json(self) -> JsonableDict:
        return {
            "name": self.name,
            "id": self.id,
            "type": self.system_type.value,
            "model": self.model,
            "firmware_version": self.firmware_version,
            "latitude": None if self.latitude is None else float(self.latitude),
            "longitude": None if self.longitude is None else float(self.longitude),
        }

    def __str__(self) -> str:
        return f"{self.system_type.name} {self.name}"

    def __repr__(self) -> str:
        return f"SystemInfo(name={self.name!r}, id={self.id!r}, type={self.system_type.name}, model={self.model!r})"
