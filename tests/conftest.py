"""
In-process fake TP-Link Smart Home devices bound to the loopback interface.

FakeUdpDevice replies to datagrams through a handler; fake_tcp_device() runs an
asyncio stream server whose connection handler is supplied by the test.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from tplink_smarthome_protocol.codec import encode, decode
from tplink_smarthome_protocol.transport import SmartHomeTransport

LOOPBACK = "127.0.0.1"

UdpHandler = Callable[[bytes, int], Optional[bytes]]
"""Called with (decoded_request, request_number) for each datagram; returns the plaintext reply or None."""


class FakeUdpDevice(asyncio.DatagramProtocol):
    def __init__(self, handler: UdpHandler) -> None:
        self.handler = handler
        self.received: List[Tuple[Tuple[str, int], bytes]] = []
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        plaintext = decode(data)
        self.received.append((addr, plaintext))
        reply = self.handler(plaintext, len(self.received))
        if reply is not None and self.transport is not None:
            self.transport.sendto(encode(reply), addr)

    @property
    def port(self) -> int:
        assert self.transport is not None
        return self.transport.get_extra_info("sockname")[1]


@asynccontextmanager
async def fake_udp_device(handler: UdpHandler) -> AsyncIterator[FakeUdpDevice]:
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: FakeUdpDevice(handler), local_addr=(LOOPBACK, 0)
    )
    try:
        yield protocol
    finally:
        transport.close()


@asynccontextmanager
async def fake_tcp_device(
    handler: Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]
) -> AsyncIterator[int]:
    """Runs a TCP server on an ephemeral loopback port and yields the port."""
    server = await asyncio.start_server(handler, LOOPBACK, 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        await server.wait_closed()


def sysinfo_reply(alias: str, device_id: str, **extra: Any) -> bytes:
    """A plaintext get_sysinfo reply for a plug."""
    sysinfo: Dict[str, Any] = {
        "err_code": 0,
        "alias": alias,
        "deviceId": device_id,
        "model": "HS110(EU)",
        "sw_ver": "1.2.5 Build 171213 Rel.101523",
        "type": "IOT.SMARTPLUGSWITCH",
        "feature": "TIM:ENE",
        "latitude": 52.1,
        "longitude": 4.3,
        "relay_state": 1,
    }
    sysinfo.update(extra)
    return json.dumps({"system": {"get_sysinfo": sysinfo}}).encode("utf-8")


class ScriptedTransport(SmartHomeTransport):
    """An in-memory transport that answers each "object.member" command with a canned result node."""

    protocol_name = "scripted"

    def __init__(self, results: Dict[str, Any]) -> None:
        super().__init__("scripted-device")
        self.results = results
        self.commands: List[Dict[str, Any]] = []
        self.raw_commands: List[str] = []

    def sent(self, object: str, member: str) -> List[Dict[str, Any]]:
        """Returns the params of every command sent to object.member, in order."""
        return [c[object][member] for c in self.commands if object in c and member in c[object]]

    async def execute(self, command: str) -> str:
        self.raw_commands.append(command)
        document = json.loads(command)
        self.commands.append(document)
        (object, members), = document.items()
        (member, _), = members.items()
        result = self.results[f"{object}.{member}"]
        if callable(result):
            result = result()
        return json.dumps({object: {member: result}})
