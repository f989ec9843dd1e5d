import socket
import threading

import pytest

from conftest import LOOPBACK, ScriptedTransport, sysinfo_reply
from tplink_smarthome_protocol import DeviceError, SmartHomeClient, SyncSmartHomeClient
from tplink_smarthome_protocol.codec import decode, encode


class ThreadedUdpDevice:
    """A blocking-socket fake device, for use with clients that run their own event loop."""

    def __init__(self, reply: bytes) -> None:
        self.reply = reply
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((LOOPBACK, 0))
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self.requests = []
        self.stopping = threading.Event()
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self) -> None:
        while not self.stopping.is_set():
            try:
                data, addr = self.sock.recvfrom(65535)
            except socket.timeout:
                continue
            self.requests.append(decode(data))
            self.sock.sendto(encode(self.reply), addr)

    def __enter__(self):
        self.thread.start()
        return self

    def __exit__(self, *exc_info):
        self.stopping.set()
        self.thread.join()
        self.sock.close()


def test_execute():
    transport = ScriptedTransport({"system.set_relay_state": {"err_code": 0}})
    with SyncSmartHomeClient(SmartHomeClient(transport=transport)) as client:
        assert client.execute("system", "set_relay_state", state=1) == {"err_code": 0}
        assert client.execute("system", "set_relay_state", {"state": 0}) == {"err_code": 0}
    assert transport.sent("system", "set_relay_state") == [{"state": 1}, {"state": 0}]
    assert client.loop is None


def test_execute_propagates_errors():
    transport = ScriptedTransport({"system.reboot": {"err_code": -3}})
    with SyncSmartHomeClient(SmartHomeClient(transport=transport)) as client:
        with pytest.raises(DeviceError):
            client.execute("system", "reboot", delay=1)


def test_discover():
    with ThreadedUdpDevice(sysinfo_reply("Lamp", "ID1")) as device:
        transport = ScriptedTransport({})
        with SyncSmartHomeClient(SmartHomeClient(transport=transport)) as client:
            found = client.discover([LOOPBACK], timeout=0.3, port=device.port)
    assert [info.system_info.name for info in found] == ["Lamp"]
    assert device.requests[0] == b'{"system":{"get_sysinfo":{}}}'
