# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package tplink_smarthome_protocol implements the client side of the TP-Link Smart Home protocol.

TP-Link Smart Home devices (Kasa smart plugs, switches and bulbs) accept JSON commands
of the form {"<object>": {"<member>": {<params>}}} on port 9999, over either TCP or UDP.
Message bodies are obfuscated with a single-byte autokey XOR cipher; on TCP each message
is also prefixed with a 4-byte big-endian length header.

Devices are discovered by broadcasting a "system.get_sysinfo" command over UDP and
collecting the replies.

The protocol is not publicly documented by TP-Link, but has been reverse-engineered
well enough to discover and control devices on a local network.
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict, HostAndPort

from .exceptions import (
    SmartHomeError,
    ArgumentError,
    SmartHomeConnectionError,
    SmartHomeTimeoutError,
    DataError,
    DeviceError,
    CapabilityNotSupportedError,
    FirmwareUpdateInProgressError,
    WirelessNetworkNotFoundError,
  )

from .codec import encode, decode, encode_text, decode_text, frame, unpack_length_header
from .response import parse_response
from .datagram_socket import SmartHomeDatagramSocket
from .transport import SmartHomeTransport, TcpSmartHomeTransport, UdpSmartHomeTransport, create_transport
from .system_info import SystemInfo, SystemType
from .discovery import SmartHomeDeviceInfo, SmartHomeDiscoveryRequest, discover, simple_discover
from .client import SmartHomeClient
from .models import OutputState, CalibrationInfo, ConsumptionInfo, CloudInfo
from .timezone import PosixTimezone, TimezoneCache, parse_posix_tz, default_timezone_cache
from .capabilities import (
    SystemCapability,
    RelayCapability,
    EnergyMeterCapability,
    TimeCapability,
    CloudCapability,
    NetworkCapability,
  )
from .device import SmartHomeDevice
from .sync import SyncSmartHomeClient
from .config import SmartHomeClientConfig, KeyringPasswordConfig, DEFAULT_KEYRING_SERVICE
from .util import get_local_broadcast_addresses, resolve_discovery_targets
from .constants import (
    SMARTHOME_PORT,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_RETRANSMIT_INTERVAL,
    DEFAULT_RECEIVE_TIMEOUT,
    DEFAULT_TCP_TIMEOUT,
    PROTOCOL_UDP,
    PROTOCOL_TCP,
  )

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict', 'HostAndPort',
    'SmartHomeError', 'ArgumentError', 'SmartHomeConnectionError', 'SmartHomeTimeoutError',
    'DataError', 'DeviceError', 'CapabilityNotSupportedError', 'FirmwareUpdateInProgressError',
    'WirelessNetworkNotFoundError',
    'encode', 'decode', 'encode_text', 'decode_text', 'frame', 'unpack_length_header',
    'parse_response',
    'SmartHomeDatagramSocket',
    'SmartHomeTransport', 'TcpSmartHomeTransport', 'UdpSmartHomeTransport', 'create_transport',
    'SystemInfo', 'SystemType',
    'SmartHomeDeviceInfo', 'SmartHomeDiscoveryRequest', 'discover', 'simple_discover',
    'SmartHomeClient',
    'OutputState', 'CalibrationInfo', 'ConsumptionInfo', 'CloudInfo',
    'PosixTimezone', 'TimezoneCache', 'parse_posix_tz', 'default_timezone_cache',
    'SystemCapability', 'RelayCapability', 'EnergyMeterCapability', 'TimeCapability',
    'CloudCapability', 'NetworkCapability',
    'SmartHomeDevice',
    'SyncSmartHomeClient',
    'SmartHomeClientConfig', 'KeyringPasswordConfig', 'DEFAULT_KEYRING_SERVICE',
    'get_local_broadcast_addresses', 'resolve_discovery_targets',
    'SMARTHOME_PORT', 'DEFAULT_DISCOVERY_TIMEOUT', 'DEFAULT_RETRANSMIT_INTERVAL',
    'DEFAULT_RECEIVE_TIMEOUT', 'DEFAULT_TCP_TIMEOUT', 'PROTOCOL_UDP', 'PROTOCOL_TCP',
]
