import json
from unittest import mock

import pytest

from tplink_smarthome_protocol import (
    ArgumentError,
    KeyringPasswordConfig,
    SmartHomeClientConfig,
    TcpSmartHomeTransport,
    UdpSmartHomeTransport,
)


class TestSmartHomeClientConfig:
    def test_defaults(self):
        config = SmartHomeClientConfig()
        assert config.host is None
        assert config.port == 9999
        assert config.protocol == "udp"
        assert config.timeout is None
        assert config.discovery_timeout == 5.0

    def test_from_env(self):
        environ = {
            "TPLINK_SMARTHOME_HOST": "10.0.0.7",
            "TPLINK_SMARTHOME_PORT": "10000",
            "TPLINK_SMARTHOME_PROTOCOL": "TCP",
            "TPLINK_SMARTHOME_TIMEOUT": "2.5",
            "TPLINK_SMARTHOME_DISCOVERY_TIMEOUT": "1.5",
        }
        config = SmartHomeClientConfig.from_env(environ)
        assert (config.host, config.port, config.protocol, config.timeout) == ("10.0.0.7", 10000, "tcp", 2.5)
        assert config.discovery_timeout == 1.5

    def test_keyword_arguments_override_env(self):
        environ = {"TPLINK_SMARTHOME_HOST": "10.0.0.7", "TPLINK_SMARTHOME_PROTOCOL": "tcp"}
        config = SmartHomeClientConfig.from_env(environ, host="10.0.0.8", protocol=None)
        assert config.host == "10.0.0.8"
        assert config.protocol == "tcp"

    @pytest.mark.parametrize("environ", [
        {"TPLINK_SMARTHOME_PROTOCOL": "sctp"},
        {"TPLINK_SMARTHOME_PORT": "0"},
        {"TPLINK_SMARTHOME_PORT": "ninety"},
        {"TPLINK_SMARTHOME_TIMEOUT": "-1"},
        {"TPLINK_SMARTHOME_DISCOVERY_TIMEOUT": "0"},
    ])
    def test_invalid_env(self, environ):
        with pytest.raises(ArgumentError):
            SmartHomeClientConfig.from_env(environ)

    def test_from_json_text(self):
        config = SmartHomeClientConfig.from_json_text('{"host": "lamp.local", "timeout": 1, "discovery_timeout": 3}')
        assert config.host == "lamp.local"
        assert config.timeout == 1.0
        assert config.discovery_timeout == 3.0

    @pytest.mark.parametrize("text", ["{not json", "[1, 2]", '{"port": true}'])
    def test_invalid_json_text(self, text):
        with pytest.raises(ArgumentError):
            SmartHomeClientConfig.from_json_text(text)

    def test_from_file(self, tmp_path):
        path = tmp_path / "device.json"
        path.write_text(json.dumps({"host": "10.0.0.9", "protocol": "tcp"}), encoding="utf-8")
        config = SmartHomeClientConfig.from_file(str(path))
        assert config.host == "10.0.0.9"
        assert config.config_file == str(path)

    def test_create_client(self):
        client = SmartHomeClientConfig(host="10.0.0.9", protocol="tcp", timeout=3.0).create_client()
        assert isinstance(client.transport, TcpSmartHomeTransport)
        assert client.transport.timeout == 3.0
        client = SmartHomeClientConfig(host="10.0.0.9").create_client()
        assert isinstance(client.transport, UdpSmartHomeTransport)

    def test_create_client_requires_host(self):
        with pytest.raises(ArgumentError):
            SmartHomeClientConfig().create_client()


class TestKeyringPasswordConfig:
    def test_get_password(self):
        with mock.patch("tplink_smarthome_protocol.config.keyring_password.keyring") as keyring:
            keyring.get_password.return_value = "secret"
            assert KeyringPasswordConfig().get_password("Home") == "secret"
            keyring.get_password.assert_called_once_with("tplink-smarthome", "Home")

    def test_missing_password(self):
        with mock.patch("tplink_smarthome_protocol.config.keyring_password.keyring") as keyring:
            keyring.get_password.return_value = None
            config = KeyringPasswordConfig(service="other")
            with pytest.raises(KeyError):
                config.get_password("Home")
            assert not config.password_exists("Home")

    def test_set_password(self):
        with mock.patch("tplink_smarthome_protocol.config.keyring_password.keyring") as keyring:
            KeyringPasswordConfig().set_password("Home", "secret")
            keyring.set_password.assert_called_once_with("tplink-smarthome", "Home", "secret")

    def test_service_from_json(self):
        config = KeyringPasswordConfig()
        config.loads('{"service": "my-service"}')
        assert config.service == "my-service"
