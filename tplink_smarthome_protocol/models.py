#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple value types returned and accepted by device capabilities.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import IntEnum

from .internal_types import *
from .exceptions import DataError

def get_int_field(result: Mapping[str, Any], key: str) -> int:
    """Returns an integer field of a command result, or raises DataError."""
    value = result.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise DataError(f"Result field '{key}' is missing or not an integer: {value!r}")
    try:
        return int(value)
    except ValueError as e:
        raise DataError(f"Result field '{key}' is not an integer: {value!r}") from e

def get_decimal_field(result: Mapping[str, Any], key: str) -> Decimal:
    """Returns a numeric field of a command result as a Decimal, or raises DataError."""
    value = result.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise DataError(f"Result field '{key}' is missing or not a number: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise DataError(f"Result field '{key}' is not a number: {value!r}") from e

def get_str_field(result: Mapping[str, Any], key: str) -> str:
    value = result.get(key)
    if not isinstance(value, str):
        raise DataError(f"Result field '{key}' is missing or not a string: {value!r}")
    return value

class OutputState(IntEnum):
    """The state of a digital output (e.g., a plug's relay)."""
    OFF = 0
    ON = 1

class CalibrationInfo:
    """Energy meter calibration gains."""

    voltage_gain: int
    current_gain: int

    def __init__(self, voltage_gain: int, current_gain: int) -> None:
        self.voltage_gain = voltage_gain
        self.current_gain = current_gain

    @classmethod
    def from_json(cls, result: JsonableDict) -> CalibrationInfo:
        return cls(get_int_field(result, 'vgain'), get_int_field(result, 'igain'))

    def to_json(self) -> JsonableDict:
        return dict(vgain=self.voltage_gain, igain=self.current_gain)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CalibrationInfo):
            return NotImplemented
        return self.voltage_gain == other.voltage_gain and self.current_gain == other.current_gain

    def __repr__(self) -> str:
        return f"CalibrationInfo(voltage_gain={self.voltage_gain}, current_gain={self.current_gain})"

class ConsumptionInfo:
    """A realtime energy meter reading."""

    power: Decimal
    """Watts"""

    voltage: Decimal
    """Volts"""

    current: Decimal
    """Amperes"""

    def __init__(self, power: Decimal, voltage: Decimal, current: Decimal) -> None:
        self.power = power
        self.voltage = voltage
        self.current = current

    @classmethod
    def from_json(cls, result: JsonableDict) -> ConsumptionInfo:
        return cls(
            get_decimal_field(result, 'power'),
            get_decimal_field(result, 'voltage'),
            get_decimal_field(result, 'current'),
          )

    def to_json(self) -> JsonableDict:
        return dict(power=float(self.power), voltage=float(self.voltage), current=float(self.current))

    def __repr__(self) -> str:
        return f"ConsumptionInfo(power={self.power}, voltage={self.voltage}, current={self.current})"

class CloudInfo:
    """The cloud account binding of a device."""

    username: Optional[str]
    """The bound account name, or None if the device is not bound."""

    def __init__(self, username: Optional[str]=None) -> None:
        self.username = username

    @property
    def is_bound(self) -> bool:
        return self.username is not None

    @classmethod
    def from_json(cls, result: JsonableDict) -> CloudInfo:
        if get_int_field(result, 'binded') == 1:
            return cls(get_str_field(result, 'username'))
        return cls()

    def to_json(self) -> JsonableDict:
        return dict(username=self.username)

    def __repr__(self) -> str:
        return f"CloudInfo(username={self.username!r})"
