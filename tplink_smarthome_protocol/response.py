#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Parsing of decoded device responses.

A response mirrors the shape of the command that produced it:

    {"system": {"get_sysinfo": {"err_code": 0, "alias": "Lamp", ...}}}

The node at the command's "object.member" path is the result of the command. If
that node carries a non-zero "err_code", the device has reported an error.
"""

from __future__ import annotations

import json

from .internal_types import *
from .pkg_logging import logger
from .exceptions import DataError, DeviceError

def resolve_path(document: Jsonable, path: str) -> Optional[Jsonable]:
    """Walks a dotted path ("object.member") through nested JSON objects.

    Returns None if any element of the path is missing or is not an object.
    """
    node: Jsonable = document
    for part in path.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node

def parse_response(response: str, path: str) -> JsonableDict:
    """Parses a decoded response and returns the result node at `path`.

    Raises:
        DataError:   The response is not a JSON object, or `path` does not resolve to an object.
        DeviceError: The result node has a non-zero err_code.
    """
    try:
        document = json.loads(response)
    except (json.JSONDecodeError, TypeError) as e:
        raise DataError(f"The device has sent an invalid response: {response!r}") from e

    result = resolve_path(document, path)
    if not isinstance(result, dict):
        logger.debug(f"Response has no object at '{path}': {response!r}")
        raise DataError(f"The device has sent an invalid response: no result at '{path}'")

    if 'err_code' in result:
        raw_err_code = result['err_code']
        try:
            err_code = int(raw_err_code)  # type: ignore[arg-type]
        except (TypeError, ValueError) as e:
            raise DataError(f"The device has sent an invalid err_code: {raw_err_code!r}") from e
        if err_code != 0:
            err_msg = result.get('err_msg')
            raise DeviceError(err_code, None if err_msg is None else str(err_msg))

    return result
