#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration of a client connection to a device.

A configuration can come from keyword arguments, from environment variables:

    TPLINK_SMARTHOME_HOST       The device hostname or IP address
    TPLINK_SMARTHOME_PORT       The device port (default 9999)
    TPLINK_SMARTHOME_PROTOCOL   "udp" (default) or "tcp"
    TPLINK_SMARTHOME_TIMEOUT    The transport timeout in seconds
    TPLINK_SMARTHOME_DISCOVERY_TIMEOUT
                                The duration of a discovery session in seconds (default 5)

or from a JSON object with the keys "host", "port", "protocol", "timeout"
and "discovery_timeout".
"""

from typing import Optional, Mapping
from ..internal_types import JsonableDict

import os

from ..constants import SMARTHOME_PORT, PROTOCOL_UDP, PROTOCOL_TCP, DEFAULT_DISCOVERY_TIMEOUT
from ..exceptions import ArgumentError
from ..client import SmartHomeClient
from .base import Config

ENV_PREFIX = 'TPLINK_SMARTHOME_'

class SmartHomeClientConfig(Config):
  host: Optional[str] = None
  port: int = SMARTHOME_PORT
  protocol: str = PROTOCOL_UDP
  timeout: Optional[float] = None
  """The transport timeout in seconds; None selects the transport's default"""
  discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT

  def __init__(
        self,
        host: Optional[str]=None,
        port: int=SMARTHOME_PORT,
        protocol: str=PROTOCOL_UDP,
        timeout: Optional[float]=None,
        discovery_timeout: float=DEFAULT_DISCOVERY_TIMEOUT,
      ):
    super().__init__()
    self.host = host
    self.port = port
    self.protocol = protocol
    self.timeout = timeout
    self.discovery_timeout = discovery_timeout
    self.validate()

  def bake(self):
    super().bake()
    self.host = self.get_cfg_property_str('host', self.host)
    self.port = self.get_cfg_property_int('port', self.port)
    self.protocol = self.get_cfg_property_str('protocol', self.protocol)
    self.timeout = self.get_cfg_property_float('timeout', self.timeout)
    self.discovery_timeout = self.get_cfg_property_float('discovery_timeout', self.discovery_timeout)
    self.validate()

  def validate(self):
    if self.host == '':
      self.host = None
    self.protocol = self.protocol.lower()
    if not self.protocol in (PROTOCOL_UDP, PROTOCOL_TCP):
      raise ArgumentError(f"Config: Unsupported protocol {self.protocol!r}; expected '{PROTOCOL_UDP}' or '{PROTOCOL_TCP}'")
    if not 0 < self.port < 65536:
      raise ArgumentError(f"Config: Port {self.port} is out of range")
    if not self.timeout is None and self.timeout <= 0.0:
      raise ArgumentError(f"Config: Timeout must be positive, got {self.timeout}")
    if self.discovery_timeout <= 0.0:
      raise ArgumentError(f"Config: Discovery timeout must be positive, got {self.discovery_timeout}")

  @classmethod
  def from_env(cls, environ: Optional[Mapping[str, str]]=None, **kwargs) -> 'SmartHomeClientConfig':
    """Creates a configuration from keyword arguments, with TPLINK_SMARTHOME_* environment
       variables supplying any value that is not given (or is None)."""
    if environ is None:
      environ = os.environ
    json_data: JsonableDict = {}
    for key in ('host', 'port', 'protocol', 'timeout', 'discovery_timeout'):
      value = kwargs.get(key)
      if value is None:
        value = environ.get(ENV_PREFIX + key.upper())
      if not value is None:
        json_data[key] = value
    result = cls()
    result.load_json_data(json_data)
    return result

  @classmethod
  def from_json_text(cls, config_text: str) -> 'SmartHomeClientConfig':
    result = cls()
    result.loads(config_text)
    return result

  @classmethod
  def from_file(cls, pathname: str) -> 'SmartHomeClientConfig':
    result = cls()
    result.load_file(pathname)
    return result

  def create_client(self) -> SmartHomeClient:
    if self.host is None:
      raise ArgumentError("Config: A device host is required; set TPLINK_SMARTHOME_HOST or provide a host")
    return SmartHomeClient(self.host, protocol=self.protocol, port=self.port, timeout=self.timeout)

  def to_json(self) -> JsonableDict:
    return dict(
        host=self.host,
        port=self.port,
        protocol=self.protocol,
        timeout=self.timeout,
        discovery_timeout=self.discovery_timeout,
      )

  def __repr__(self) -> str:
    return f"SmartHomeClientConfig({self.to_json()})"
