#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

import ipaddress
from ipaddress import IPv4Address, IPv4Network

import netifaces

from .internal_types import *
from .constants import DEFAULT_BROADCAST_ADDRESS
from .exceptions import ArgumentError

DiscoveryTarget = Union[str, IPv4Address, IPv4Network]
"""A discovery target: a broadcast (or unicast) address, or a network whose broadcast address is used."""

def get_default_ip_gateway_interface() -> Optional[str]:
    """Returns the name of the interface that holds the default IPv4 gateway, if any."""
    gws = netifaces.gateways()
    default_gateway_infos = gws.get("default", {})
    if netifaces.AF_INET in default_gateway_infos:
        _, gw_interface_name = default_gateway_infos[netifaces.AF_INET][:2]
        return gw_interface_name
    return None

def get_local_broadcast_addresses_and_interfaces(include_loopback: bool=False) -> List[Tuple[str, str]]:
    """Returns a list of Tuple[broadcast_address: str, interface_name: str] for the IPv4 networks
       the local host is attached to. The result is sorted in a way that attempts to place the
       "preferred" network first in the list, according to the following scheme:
           1. Networks on the default gateway interface precede all other networks.
           2. Non-loopback networks precede loopback networks.
           3. Networks whose address begins with 172. follow other networks. This is a hack to
              deprioritize local docker networks.
       Interfaces that do not report a broadcast address (e.g., point-to-point links) are skipped.
    """
    result_with_priority: List[Tuple[int, str, str]] = []
    default_gateway_ifname = get_default_ip_gateway_interface()
    for ifname in netifaces.interfaces():
        ifinfo = netifaces.ifaddresses(ifname)
        for addrinfo in ifinfo.get(netifaces.AF_INET, []):
            ip_str = addrinfo.get('addr')
            broadcast_str = addrinfo.get('broadcast')
            if not isinstance(ip_str, str) or not isinstance(broadcast_str, str):
                continue
            if IPv4Address(ip_str).is_loopback:
                if not include_loopback:
                    continue
                priority = 3
            elif ifname == default_gateway_ifname:
                priority = 0
            elif ip_str.startswith('172.'):
                priority = 2
            else:
                priority = 1
            result_with_priority.append((priority, broadcast_str, ifname))
    return [ (broadcast, ifname) for _, broadcast, ifname in sorted(result_with_priority)]

def get_local_broadcast_addresses(include_loopback: bool=False) -> List[str]:
    """Returns the distinct IPv4 broadcast addresses of the local host's networks, preferred first.
       See get_local_broadcast_addresses_and_interfaces() for the ordering."""
    result: List[str] = []
    for broadcast, _ in get_local_broadcast_addresses_and_interfaces(include_loopback=include_loopback):
        if broadcast not in result:
            result.append(broadcast)
    return result

def resolve_discovery_target(target: DiscoveryTarget) -> str:
    """Converts a discovery target to the address the discovery request is sent to.

    Networks (IPv4Network, or text in CIDR notation such as "192.168.1.0/24") resolve to
    their broadcast address. Addresses and host names are returned as strings unchanged; host
    names are looked up without blocking when a discovery session starts.
    """
    if isinstance(target, IPv4Network):
        return str(target.broadcast_address)
    if isinstance(target, IPv4Address):
        return str(target)
    if not isinstance(target, str) or target == '':
        raise ArgumentError(f"Invalid discovery target: {target!r}")
    if '/' in target:
        try:
            network = ipaddress.ip_network(target, strict=False)
        except ValueError as e:
            raise ArgumentError(f"Invalid discovery network: {target!r}") from e
        if not isinstance(network, IPv4Network):
            raise ArgumentError(f"Discovery requires an IPv4 network: {target!r}")
        return str(network.broadcast_address)
    return target

def resolve_discovery_targets(targets: Optional[Iterable[DiscoveryTarget]]=None) -> List[str]:
    """Resolves discovery targets, dropping duplicates. Defaults to the limited broadcast address."""
    if targets is None:
        return [DEFAULT_BROADCAST_ADDRESS]
    result: List[str] = []
    for target in targets:
        address = resolve_discovery_target(target)
        if address not in result:
            result.append(address)
    if len(result) == 0:
        raise ArgumentError("At least one discovery target is required")
    return result
