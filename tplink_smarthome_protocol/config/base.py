#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration support.

"""

from typing import Optional, Dict, Any, Mapping, TypeVar, Union, overload
from ..internal_types import Jsonable, JsonableDict, JsonableTypes

import os
import json

from ..exceptions import ArgumentError

_T = TypeVar('_T')

class Config:
  _json_data: Optional[JsonableDict] = None
  _config_file: Optional[str] = None

  def __init__(self):
    pass

  def bake(self):
    pass

  @property
  def config_file(self) -> Optional[str]:
    """The fully qualified pathname of the configuration file from which this Config
       originated, or None if not from a file"""
    return self._config_file

  def loads(self, config_text: str):
    try:
      json_data = json.loads(config_text)
    except json.JSONDecodeError as e:
      raise ArgumentError(f"Config: Invalid JSON configuration: {e}") from e
    if not isinstance(json_data, dict):
      raise ArgumentError(f"Config: Expected configuration to be a JSON object, got {type(json_data).__name__}")
    self._json_data = json_data
    self.bake()

  def load_json_data(self, json_data: Mapping[str, Jsonable]):
    self.loads(json.dumps(dict(json_data)))

  def load_file(self, pathname: str):
    config_file = os.path.abspath(os.path.expanduser(pathname))
    with open(config_file, encoding='utf-8') as f:
      config_text = f.read()
    self._config_file = config_file
    self.loads(config_text)

  _no_default = object()

  @overload
  def get_cfg_property(self, key: str, default: _T) -> Union[Jsonable, _T]: pass

  @overload
  def get_cfg_property(self, key: str) -> Jsonable: pass

  def get_cfg_property(self, key: str, default = _no_default):
    json_data: Dict[str, Any] = {} if self._json_data is None else self._json_data
    result = json_data.get(key, default)
    if result is self._no_default:
      raise ArgumentError(f"Config: Property {key} does not exist and has no default")
    if not result is None and not isinstance(result, JsonableTypes):
      raise ArgumentError(f"Config: Expected property {key} to be JSON-able, got {type(result)}")
    return result

  @overload
  def get_cfg_property_str(self, key: str, default: _T) -> Union[str, _T]: pass

  @overload
  def get_cfg_property_str(self, key: str) -> str: pass

  def get_cfg_property_str(self, key: str, default: Any=_no_default):
    result = self.get_cfg_property(key, default)
    if not result is default and not isinstance(result, str):
      raise ArgumentError(f"Config: Expected property {key} to be str, got {type(result)}")
    return result

  @overload
  def get_cfg_property_int(self, key: str, default: _T) -> Union[int, _T]: pass

  @overload
  def get_cfg_property_int(self, key: str) -> int: pass

  def get_cfg_property_int(self, key: str, default: Any=_no_default):
    result = self.get_cfg_property(key, default)
    if result is default:
      return result
    if isinstance(result, str):
      try:
        result = int(result)
      except ValueError:
        pass
    if isinstance(result, bool) or not isinstance(result, int):
      raise ArgumentError(f"Config: Expected property {key} to be int, got {type(result)}")
    return result

  @overload
  def get_cfg_property_float(self, key: str, default: _T) -> Union[float, _T]: pass

  @overload
  def get_cfg_property_float(self, key: str) -> float: pass

  def get_cfg_property_float(self, key: str, default: Any=_no_default):
    result = self.get_cfg_property(key, default)
    if result is default:
      return result
    if isinstance(result, str):
      try:
        result = float(result)
      except ValueError:
        pass
    if isinstance(result, bool) or not isinstance(result, (int, float)):
      raise ArgumentError(f"Config: Expected property {key} to be a number, got {type(result)}")
    return float(result)
