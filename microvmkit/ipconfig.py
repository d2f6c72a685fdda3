"""Static network and IP configuration of a microVM interface."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import List, Optional, Union

IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class NetworkValidationError(ValueError):
    """Raised when a network configuration is invalid."""


def _is_ipv4(address: Optional[IPAddress]) -> bool:
    if isinstance(address, ipaddress.IPv4Address):
        return True
    if isinstance(address, ipaddress.IPv6Address):
        return address.ipv4_mapped is not None
    return False


@dataclass
class IPConfiguration:
    """An IP address with netmask, a gateway and up to two nameservers for the guest.

    ``if_name`` selects the guest interface; leave it empty for a VM with a
    single network interface. Strings are accepted for ``ip_addr`` (CIDR form)
    and ``gateway`` and converted on construction.
    """

    ip_addr: Optional[IPInterface] = None
    gateway: Optional[IPAddress] = None
    nameservers: List[str] = field(default_factory=list)
    if_name: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.ip_addr, str):
            self.ip_addr = ipaddress.ip_interface(self.ip_addr)
        if isinstance(self.gateway, str):
            self.gateway = ipaddress.ip_address(self.gateway)
        self.nameservers = list(self.nameservers)

    def validate(self) -> None:
        """Raise NetworkValidationError unless addresses are IPv4 and at most two nameservers are given."""
        host = self.ip_addr.ip if self.ip_addr is not None else None
        for address in (host, self.gateway):
            if not _is_ipv4(address):
                raise NetworkValidationError(
                    f"invalid ip, only ipv4 addresses are supported: {address}"
                )
        if len(self.nameservers) > 2:
            raise NetworkValidationError(
                f"cannot specify more than 2 nameservers: {self.nameservers}"
            )


@dataclass
class StaticNetworkConfiguration:
    """A network interface given by a MAC address, a host tap device and optional IP settings."""

    mac_address: str = ""
    host_dev_name: str = ""
    ip_configuration: Optional[IPConfiguration] = None

    def validate(self) -> None:
        """Raise NetworkValidationError if the tap name is missing or the IP settings are invalid."""
        if not self.host_dev_name:
            raise NetworkValidationError(
                f"HostDevName must be provided if StaticNetworkConfiguration is provided: {self!r}"
            )
        if self.ip_configuration is not None:
            self.ip_configuration.validate()