#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Type hints used internally by this package.

Modules in this package use "from .internal_types import *" to pick up the
common typing names in one place.
"""

from __future__ import annotations

from typing import (
    Any,
    AsyncContextManager,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    TypeVar,
    Union,
    cast,
)

from types import TracebackType

from typing_extensions import Self, TypeAlias

Jsonable: TypeAlias = Union[str, int, float, bool, None, Dict[str, Any], List[Any]]
"""A value that can be serialized to JSON with json.dumps()."""

JsonableDict: TypeAlias = Dict[str, Jsonable]
"""A dict that can be serialized to a JSON object with json.dumps()."""

JsonableTypes = (str, int, float, bool, dict, list)
"""A tuple of types usable with isinstance() to check for a non-null Jsonable value."""

HostAndPort: TypeAlias = Tuple[str, int]
"""An (ip_address_or_hostname, port) socket address tuple."""

__all__ = [
    'Any',
    'AsyncContextManager',
    'AsyncIterable',
    'AsyncIterator',
    'Awaitable',
    'Callable',
    'Dict',
    'Iterable',
    'Iterator',
    'List',
    'Mapping',
    'MutableMapping',
    'Optional',
    'Sequence',
    'Set',
    'Tuple',
    'Type',
    'TypeVar',
    'Union',
    'cast',
    'TracebackType',
    'Self',
    'Jsonable',
    'JsonableDict',
    'JsonableTypes',
    'HostAndPort',
]
