from .base import Config
from .client_config import SmartHomeClientConfig
from .keyring_password import KeyringPasswordConfig, DEFAULT_KEYRING_SERVICE
