#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SmartHomeClient -- The command façade for a single TP-Link Smart Home device.

Every device operation is a named (object, member, params) triple:

    client = SmartHomeClient("192.168.1.50")
    sysinfo = await client.execute("system", "get_sysinfo")
    await client.execute("system", "set_relay_state", state=1)
"""

from __future__ import annotations

import json

from .internal_types import *
from .pkg_logging import logger
from .constants import SMARTHOME_PORT, PROTOCOL_UDP
from .exceptions import ArgumentError
from .response import parse_response
from .transport import SmartHomeTransport, create_transport

def build_command(object: str, member: str, params: Optional[Mapping[str, Jsonable]]=None) -> str:
    """Serializes the command envelope {object: {member: {params...}}}. Parameter order is preserved."""
    if not isinstance(object, str) or object == '':
        raise ArgumentError("Command object name must be a non-empty string")
    if not isinstance(member, str) or member == '':
        raise ArgumentError("Command member name must be a non-empty string")
    envelope = { object: { member: {} if params is None else dict(params) } }
    try:
        return json.dumps(envelope, separators=(',', ':'))
    except (TypeError, ValueError) as e:
        raise ArgumentError(f"Command parameters are not serializable: {e}") from e

class SmartHomeClient:
    """Executes commands on one device over a transport fixed at construction."""

    transport: SmartHomeTransport

    def __init__(
            self,
            host: Optional[str]=None,
            protocol: str=PROTOCOL_UDP,
            port: int=SMARTHOME_PORT,
            timeout: Optional[float]=None,
            transport: Optional[SmartHomeTransport]=None,
          ) -> None:
        """Create a client for the device at `host`.

        Parameters:
            host:      The hostname or IP address of the device.
            protocol:  "udp" (the default) or "tcp".
            port:      The device port. Defaults to 9999.
            timeout:   The per-attempt receive timeout (udp) or exchange timeout (tcp).
                       Defaults to 5 seconds.
            transport: A preconstructed transport. If provided, host, protocol, port and
                       timeout are ignored.
        """
        if transport is None:
            if host is None:
                raise ArgumentError("A device host name or IP address is required")
            transport = create_transport(host, protocol=protocol, port=port, timeout=timeout)
        self.transport = transport

    @property
    def host(self) -> str:
        return self.transport.host

    @property
    def protocol(self) -> str:
        return self.transport.protocol_name

    def __str__(self) -> str:
        return f"SmartHomeClient({self.transport})"

    def __repr__(self) -> str:
        return str(self)

    async def execute(
            self,
            object: str,
            member: str,
            params: Optional[Mapping[str, Jsonable]]=None,
            **kwargs: Jsonable
          ) -> JsonableDict:
        """Executes a command and returns the result node at object.member.

        Parameters are taken from `params` followed by any keyword arguments.

        Raises:
            ArgumentError:            object or member is empty, or params cannot be serialized.
            SmartHomeConnectionError: The transport failed.
            SmartHomeTimeoutError:    The device did not answer in time.
            DataError:                The response is malformed.
            DeviceError:              The device reported a non-zero err_code.
        """
        all_params: Dict[str, Jsonable] = {}
        if params is not None:
            all_params.update(params)
        all_params.update(kwargs)
        command = build_command(object, member, all_params)
        logger.debug(f"Executing on {self.transport}: {command}")
        response = await self.transport.execute(command)
        logger.debug(f"Response from {self.transport}: {response}")
        return parse_response(response, f"{object}.{member}")
