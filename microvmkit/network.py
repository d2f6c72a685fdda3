"""Network interfaces of a microVM: static or CNI-driven configuration and their validation."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .ipconfig import NetworkValidationError, StaticNetworkConfiguration
from .models import RateLimiter

DEFAULT_CNI_BIN_DIR = "/opt/cni/bin"
DEFAULT_CNI_CONF_DIR = "/etc/cni/conf.d"
DEFAULT_CNI_CACHE_DIR = "/var/lib/cni"


@dataclass
class CNIConfiguration:
    """CNI parameters used to create the network namespace and tap device of an interface.

    Exactly one of ``network_name`` and ``network_config`` must be given.
    ``container_id`` is normally filled from the VM id, and ``netns_path``
    from the jailer configuration or the default netns location.
    """

    network_name: str = ""
    network_config: Optional[Any] = None
    if_name: str = ""
    vm_if_name: str = ""
    args: List[Tuple[str, str]] = field(default_factory=list)
    bin_path: List[str] = field(default_factory=list)
    conf_dir: str = ""
    cache_dir: str = ""
    container_id: str = ""
    netns_path: str = ""
    force: bool = False

    def validate(self) -> None:
        """Raise NetworkValidationError unless exactly one of network name and config is set."""
        if not self.network_name and self.network_config is None:
            raise NetworkValidationError(
                f"must specify either NetworkName or NetworkConfig in CNIConfiguration: {self!r}"
            )
        if self.network_name and self.network_config is not None:
            raise NetworkValidationError(
                f"must not specify both NetworkName and NetworkConfig in CNIConfiguration: {self!r}"
            )

    def set_defaults(self) -> None:
        """Fill in the plugin path, config directory and per-container cache directory if unset."""
        if not self.bin_path:
            self.bin_path = [DEFAULT_CNI_BIN_DIR]
        if not self.conf_dir:
            self.conf_dir = DEFAULT_CNI_CONF_DIR
        if not self.cache_dir:
            self.cache_dir = os.path.join(DEFAULT_CNI_CACHE_DIR, self.container_id)


@dataclass
class NetworkInterface:
    """A guest network interface, configured either statically or through CNI (not both)."""

    static_configuration: Optional[StaticNetworkConfiguration] = None
    cni_configuration: Optional[CNIConfiguration] = None
    allow_mmds: bool = False
    in_rate_limiter: Optional[RateLimiter] = None
    out_rate_limiter: Optional[RateLimiter] = None


def validate_network_interfaces(
    interfaces: Sequence[NetworkInterface], kernel_args: Mapping[str, Any]
) -> None:
    """Raise NetworkValidationError if the interface list cannot be applied with these kernel args."""
    for iface in interfaces:
        has_cni = iface.cni_configuration is not None
        has_static = iface.static_configuration is not None
        has_static_ip = has_static and iface.static_configuration.ip_configuration is not None

        if not has_cni and not has_static:
            raise NetworkValidationError(
                "must specify at least one of CNIConfiguration or StaticConfiguration "
                f"for network interfaces: {list(interfaces)!r}"
            )
        if has_cni and has_static:
            raise NetworkValidationError(
                "cannot provide both CNIConfiguration and StaticConfiguration "
                f"for a network interface: {iface!r}"
            )

        if has_cni or has_static_ip:
            # The "ip=" boot parameter can describe only one interface.
            if len(interfaces) > 1:
                raise NetworkValidationError(
                    "cannot specify CNIConfiguration or IPConfiguration when multiple "
                    f"network interfaces are provided: {list(interfaces)!r}"
                )
            if "ip" in kernel_args:
                raise NetworkValidationError(
                    'CNIConfiguration or IPConfiguration cannot be specified when "ip=" '
                    f'provided in kernel boot args, value found: "{kernel_args["ip"]}"'
                )

        if has_cni:
            iface.cni_configuration.validate()
        if has_static:
            iface.static_configuration.validate()


def cni_interface(interfaces: Sequence[NetworkInterface]) -> Optional[NetworkInterface]:
    """Return the first interface configured through CNI, or None."""
    return next((iface for iface in interfaces if iface.cni_configuration is not None), None)


def static_ip_interface(interfaces: Sequence[NetworkInterface]) -> Optional[NetworkInterface]:
    """Return the first interface with a static IP configuration, or None."""
    return next(
        (
            iface
            for iface in interfaces
            if iface.static_configuration is not None
            and iface.static_configuration.ip_configuration is not None
        ),
        None,
    )