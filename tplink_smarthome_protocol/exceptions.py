#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from __future__ import annotations

from typing import Optional

class SmartHomeError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class ArgumentError(SmartHomeError, ValueError):
  """Invalid local input, detected before any I/O is attempted."""
  pass

class SmartHomeConnectionError(SmartHomeError, ConnectionError):
  """The transport failed; e.g., the connection could not be made or was closed early."""
  pass

class SmartHomeTimeoutError(SmartHomeError, TimeoutError):
  """No response was received within the transport's timeout budget."""
  pass

class DataError(SmartHomeError):
  """The device sent a response that could not be parsed or did not have the expected shape."""
  pass

class DeviceError(SmartHomeError):
  """The device parsed the command but reported a non-zero err_code."""

  code: int
  message: Optional[str]

  def __init__(self, code: int, message: Optional[str]=None):
    super().__init__(f"The device has reported error {code}: {message}")
    self.code = code
    self.message = message

class CapabilityNotSupportedError(SmartHomeError):
  """The device does not have the requested capability."""
  pass

class FirmwareUpdateInProgressError(SmartHomeError):
  """The device is already updating its firmware."""
  pass

class WirelessNetworkNotFoundError(SmartHomeError, KeyError):
  """The device is not in range of the requested wireless network."""

  def __str__(self) -> str:
    # KeyError.__str__ would repr() the message
    return Exception.__str__(self)
