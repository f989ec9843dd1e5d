#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

SMARTHOME_PORT = 9999
"""The TCP and UDP port number that TP-Link Smart Home devices listen on."""

CIPHER_SEED = 0xAB
"""The initial key byte of the autokey XOR cipher. The key is reseeded for every message."""

LENGTH_HEADER_SIZE = 4
"""Size of the big-endian unsigned body length header that prefixes TCP messages."""

MAX_TCP_BODY_LENGTH = 0xFFFFFFFF
"""The largest body length that fits in the TCP length header."""

MAX_UDP_DATAGRAM_LENGTH = 65507
"""The largest payload that fits in a single IPv4 UDP datagram."""

DEFAULT_RECEIVE_TIMEOUT = 5.0
"""Seconds to wait for a UDP reply on each of the two send attempts."""

DEFAULT_TCP_TIMEOUT = 5.0
"""Seconds allowed for a complete TCP request/response exchange."""

DEFAULT_DISCOVERY_TIMEOUT = 5.0
"""Total length (in seconds) of a discovery session."""

DEFAULT_RETRANSMIT_INTERVAL = 2.0
"""Seconds without any reply after which the discovery request is broadcast again."""

DEFAULT_BROADCAST_ADDRESS = "255.255.255.255"
"""The limited broadcast address used for discovery when no targets are given."""

DISCOVERY_OBJECT = "system"
DISCOVERY_MEMBER = "get_sysinfo"

DISCOVERY_REQUEST = '{"system":{"get_sysinfo":{}}}'
"""The fixed command text broadcast to discover devices."""

PROTOCOL_UDP = "udp"
PROTOCOL_TCP = "tcp"
