#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration support for wireless network passwords kept in the system keyring."""

import keyring

from .base import Config

DEFAULT_KEYRING_SERVICE = 'tplink-smarthome'

class KeyringPasswordConfig(Config):
  """Stores passwords under a keyring service, keyed by wireless network SSID."""

  _keyring_service: str = DEFAULT_KEYRING_SERVICE

  def __init__(self, service: str=DEFAULT_KEYRING_SERVICE):
    super().__init__()
    self._keyring_service = service

  def bake(self):
    super().bake()
    self._keyring_service = self.get_cfg_property_str('service', self._keyring_service)

  @property
  def service(self) -> str:
    return self._keyring_service

  def get_password(self, key: str) -> str:
    result = keyring.get_password(self._keyring_service, key)
    if result is None:
      raise KeyError(f"KeyringPasswordConfig: service '{self._keyring_service}', key name '{key}' does not exist")
    return result

  def set_password(self, key: str, password: str):
    keyring.set_password(self._keyring_service, key, password)

  def password_exists(self, key: str) -> bool:
    try:
      self.get_password(key)
    except KeyError:
      return False

    return True
