import struct

import pytest

from conftest import LOOPBACK, ScriptedTransport, fake_tcp_device, fake_udp_device
from tplink_smarthome_protocol import ArgumentError, DeviceError, SmartHomeClient
from tplink_smarthome_protocol.codec import decode, encode


class TestCommandEnvelope:
    @pytest.mark.asyncio
    async def test_envelope_with_keyword_params(self):
        transport = ScriptedTransport({"system.set_relay_state": {"err_code": 0}})
        client = SmartHomeClient(transport=transport)
        result = await client.execute("system", "set_relay_state", state=1)
        assert transport.raw_commands == ['{"system":{"set_relay_state":{"state":1}}}']
        assert result == {"err_code": 0}

    @pytest.mark.asyncio
    async def test_envelope_without_params(self):
        transport = ScriptedTransport({"system.get_sysinfo": {"alias": "Lamp"}})
        client = SmartHomeClient(transport=transport)
        assert await client.execute("system", "get_sysinfo") == {"alias": "Lamp"}
        assert transport.raw_commands == ['{"system":{"get_sysinfo":{}}}']

    @pytest.mark.asyncio
    async def test_param_order_is_preserved(self):
        transport = ScriptedTransport({"netif.set_stainfo": {}})
        client = SmartHomeClient(transport=transport)
        await client.execute("netif", "set_stainfo", {"ssid": "Home", "password": "pw"}, key_type=3)
        assert transport.raw_commands == ['{"netif":{"set_stainfo":{"ssid":"Home","password":"pw","key_type":3}}}']

    @pytest.mark.asyncio
    async def test_empty_names_rejected_before_io(self):
        transport = ScriptedTransport({})
        client = SmartHomeClient(transport=transport)
        with pytest.raises(ArgumentError):
            await client.execute("", "get_sysinfo")
        with pytest.raises(ArgumentError):
            await client.execute("system", "")
        assert transport.raw_commands == []

    @pytest.mark.asyncio
    async def test_device_error(self):
        transport = ScriptedTransport({"cnCloud.bind": {"err_code": -8, "err_msg": "wrong password"}})
        client = SmartHomeClient(transport=transport)
        with pytest.raises(DeviceError) as exc_info:
            await client.execute("cnCloud", "bind", username="u", password="p")
        assert exc_info.value.code == -8

    def test_host_required(self):
        with pytest.raises(ArgumentError):
            SmartHomeClient()


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_udp(self):
        reply = b'{"system":{"get_sysinfo":{"err_code":0,"alias":"Lamp"}}}'
        async with fake_udp_device(lambda data, n: reply) as device:
            client = SmartHomeClient(LOOPBACK, port=device.port, timeout=1.0)
            assert client.protocol == "udp"
            result = await client.execute("system", "get_sysinfo")
        assert result["alias"] == "Lamp"

    @pytest.mark.asyncio
    async def test_tcp(self):
        async def handler(reader, writer):
            (length,) = struct.unpack(">I", await reader.readexactly(4))
            request = decode(await reader.readexactly(length))
            assert request == b'{"system":{"set_dev_alias":{"alias":"Desk"}}}'
            reply = encode(b'{"system":{"set_dev_alias":{"err_code":0}}}')
            writer.write(struct.pack(">I", len(reply)) + reply)
            await writer.drain()
            writer.close()

        async with fake_tcp_device(handler) as port:
            client = SmartHomeClient(LOOPBACK, protocol="tcp", port=port, timeout=2.0)
            result = await client.execute("system", "set_dev_alias", alias="Desk")
        assert result == {"err_code": 0}
