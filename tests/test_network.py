import os

import pytest

from microvmkit.ipconfig import (
    IPConfiguration,
    NetworkValidationError,
    StaticNetworkConfiguration,
)
from microvmkit.network import (
    CNIConfiguration,
    NetworkInterface,
    cni_interface,
    static_ip_interface,
    validate_network_interfaces,
)

MAC = "02:00:00:00:00:01"
OTHER_MAC = "02:00:00:00:00:02"
TAP = "tap0"
KERNEL_ARGS_NO_IP = {"foo": "bar", "this": "phony"}
KERNEL_ARGS_WITH_IP = {"foo": "bar", "this": "phony", "ip": "whatevz"}


def valid_ip_configuration():
    return IPConfiguration(
        ip_addr="198.51.100.2/24",
        gateway="198.51.100.1",
        nameservers=["192.0.2.1", "192.0.2.2"],
    )


def valid_static_interface():
    return NetworkInterface(
        static_configuration=StaticNetworkConfiguration(
            mac_address=MAC, host_dev_name=TAP, ip_configuration=valid_ip_configuration()
        )
    )


def valid_cni_interface():
    return NetworkInterface(
        cni_configuration=CNIConfiguration(
            network_name="phony-network", netns_path="/my/phony/netns"
        )
    )


def plain_static_interface(mac=OTHER_MAC, tap="tap1"):
    return NetworkInterface(
        static_configuration=StaticNetworkConfiguration(mac_address=mac, host_dev_name=tap)
    )


def test_cni_validation_valid():
    cfg = valid_cni_interface().cni_configuration
    cfg.validate()
    assert cfg.network_name == "phony-network"


def test_cni_validation_fails_without_network_name():
    with pytest.raises(NetworkValidationError):
        CNIConfiguration().validate()


def test_cni_validation_fails_with_both_name_and_config():
    with pytest.raises(NetworkValidationError, match="both"):
        CNIConfiguration(network_name="net", network_config={"name": "net"}).validate()


def test_cni_validation_config_only():
    cfg = CNIConfiguration(network_config={"name": "net"})
    cfg.validate()
    assert cfg.network_name == ""


def test_set_defaults():
    cfg = CNIConfiguration(network_name="net", container_id="vm-1")
    cfg.set_defaults()
    assert cfg.bin_path == ["/opt/cni/bin"]
    assert cfg.conf_dir == "/etc/cni/conf.d"
    assert cfg.cache_dir == os.path.join("/var/lib/cni", "vm-1")


def test_set_defaults_keeps_user_values():
    cfg = CNIConfiguration(
        network_name="net", bin_path=["/bin/a"], conf_dir="/conf", cache_dir="/cache"
    )
    cfg.set_defaults()
    assert cfg.bin_path == ["/bin/a"]
    assert cfg.conf_dir == "/conf"
    assert cfg.cache_dir == "/cache"


def test_interfaces_validation_none():
    assert validate_network_interfaces([], KERNEL_ARGS_NO_IP) is None


def test_interfaces_validation_static():
    assert validate_network_interfaces([valid_static_interface()], KERNEL_ARGS_NO_IP) is None


def test_interfaces_validation_cni():
    assert validate_network_interfaces([valid_cni_interface()], KERNEL_ARGS_NO_IP) is None


def test_interfaces_validation_multiple_static():
    ifaces = [plain_static_interface(MAC, TAP), plain_static_interface()]
    assert validate_network_interfaces(ifaces, KERNEL_ARGS_NO_IP) is None


def test_interfaces_validation_fails_multiple_cni():
    ifaces = [
        valid_cni_interface(),
        NetworkInterface(
            cni_configuration=CNIConfiguration(
                network_name="something-else", netns_path="/a/different/netns"
            )
        ),
    ]
    with pytest.raises(NetworkValidationError, match="multiple"):
        validate_network_interfaces(ifaces, KERNEL_ARGS_NO_IP)


def test_interfaces_validation_fails_ip_with_multiple():
    with pytest.raises(NetworkValidationError, match="multiple"):
        validate_network_interfaces(
            [valid_static_interface(), plain_static_interface()], KERNEL_ARGS_NO_IP
        )


def test_interfaces_validation_fails_ip_with_kernel_arg():
    with pytest.raises(NetworkValidationError, match="whatevz"):
        validate_network_interfaces([valid_static_interface()], KERNEL_ARGS_WITH_IP)


def test_interfaces_validation_fails_cni_with_multiple():
    with pytest.raises(NetworkValidationError):
        validate_network_interfaces(
            [valid_cni_interface(), plain_static_interface()], KERNEL_ARGS_NO_IP
        )


def test_interfaces_validation_fails_cni_with_kernel_arg():
    with pytest.raises(NetworkValidationError):
        validate_network_interfaces([valid_cni_interface()], KERNEL_ARGS_WITH_IP)


def test_interfaces_validation_fails_neither_specified():
    with pytest.raises(NetworkValidationError, match="at least one"):
        validate_network_interfaces([NetworkInterface()], KERNEL_ARGS_NO_IP)


def test_interfaces_validation_fails_both_specified():
    iface = NetworkInterface(
        static_configuration=StaticNetworkConfiguration(mac_address=MAC, host_dev_name=TAP),
        cni_configuration=valid_cni_interface().cni_configuration,
    )
    with pytest.raises(NetworkValidationError, match="both"):
        validate_network_interfaces([iface], KERNEL_ARGS_NO_IP)


def test_interfaces_validation_propagates_static_error():
    iface = NetworkInterface(static_configuration=StaticNetworkConfiguration(mac_address=MAC))
    with pytest.raises(NetworkValidationError, match="HostDevName"):
        validate_network_interfaces([iface], KERNEL_ARGS_NO_IP)


def test_interfaces_validation_propagates_cni_error():
    iface = NetworkInterface(cni_configuration=CNIConfiguration())
    with pytest.raises(NetworkValidationError, match="NetworkName"):
        validate_network_interfaces([iface], KERNEL_ARGS_NO_IP)


def test_cni_interface_found():
    cni = valid_cni_interface()
    ifaces = [plain_static_interface(), cni]
    assert cni_interface(ifaces) is cni


def test_cni_interface_absent():
    assert cni_interface([plain_static_interface()]) is None


def test_static_ip_interface_found():
    static = valid_static_interface()
    ifaces = [plain_static_interface(), valid_cni_interface(), static]
    assert static_ip_interface(ifaces) is static


def test_static_ip_interface_absent():
    assert static_ip_interface([plain_static_interface(), valid_cni_interface()]) is None