# microvmkit

Building blocks for working with a microVM monitor: data classes for the
payloads of its control API, builders for token-bucket rate limiters,
validation of guest network interface settings, and vsock connection helpers
for both the host side and the guest side.

## Installation

```
pip install microvmkit
```

The package has no runtime dependencies. To run the tests, install the `test`
extra (`pip install microvmkit[test]`).

## Modules

- `microvmkit.models`: dataclasses for API objects. These are `TokenBucket`,
  `RateLimiter`, `Drive`, `MachineConfiguration`, `LoggerConfig`,
  `MetricsConfig`, `BootSource`, `VsockConfig` and `MmdsConfig`. Each has
  `to_dict()`, which leaves out fields that are `None` and turns nested models
  into dicts. Each also has `from_dict()`, which ignores unknown keys and
  rebuilds nested models.
- `microvmkit.rate_limiter`: `TokenBucketBuilder` and `new_rate_limiter`.
- `microvmkit.ipconfig`: `IPConfiguration`, `StaticNetworkConfiguration` and
  `NetworkValidationError`.
- `microvmkit.network`: `CNIConfiguration`, `NetworkInterface`,
  `validate_network_interfaces`, `cni_interface` and `static_ip_interface`.
- `microvmkit.vsock.dial`: `DialConfig`, `dial`, `try_connect`,
  `connect_msg`, `is_temporary_net_err`, `ConnectMsgError` and `AckError`.
- `microvmkit.vsock.listener`: `VsockListener` and `listen`.

## Rate limiters

```python
from datetime import timedelta
from microvmkit.rate_limiter import TokenBucketBuilder, new_rate_limiter

bandwidth = (
    TokenBucketBuilder()
    .with_initial_size(1024 * 1024)
    .with_bucket_size(1024 * 1024)
    .with_refill_duration(timedelta(seconds=30))
    .build()
)
ops = TokenBucketBuilder().with_bucket_size(5).with_refill_duration(5).build()
limiter = new_rate_limiter(bandwidth, ops)
print(limiter.to_dict())
```

`TokenBucketBuilder` is immutable, so each `with_*` call returns a new
builder. `with_refill_duration` accepts either a `timedelta` or a number of
seconds, and stores the value truncated to whole milliseconds. One hour, for
example, becomes `3600000`. `new_rate_limiter` copies both buckets and then
calls each extra option on the new `RateLimiter` in order.

## Validating network interfaces

```python
from microvmkit.ipconfig import IPConfiguration, StaticNetworkConfiguration
from microvmkit.network import NetworkInterface, validate_network_interfaces

iface = NetworkInterface(
    static_configuration=StaticNetworkConfiguration(
        mac_address="02:00:00:00:00:01",
        host_dev_name="tap0",
        ip_configuration=IPConfiguration(
            ip_addr="198.51.100.2/24",
            gateway="198.51.100.1",
            nameservers=["192.0.2.1"],
        ),
    )
)
validate_network_interfaces([iface], {"console": "ttyS0"})
```

If the settings are invalid, validation raises `NetworkValidationError`, which
is a subclass of `ValueError`. The cases it rejects are:

- an interface with neither CNI nor static settings, or with both;
- a CNI interface or a static IP when more than one interface is given;
- a CNI interface or a static IP when the kernel arguments already contain
  `ip`;
- a CNI configuration that does not have exactly one of `network_name` and
  `network_config`;
- a static configuration with no `host_dev_name`;
- an IPv6 address or gateway;
- more than two nameservers.

`CNIConfiguration.set_defaults()` fills in any of these that are empty:

- the plugin path, `/opt/cni/bin`;
- the configuration directory, `/etc/cni/conf.d`;
- the cache directory, `/var/lib/cni/<container_id>`.

`cni_interface` returns the first interface that has CNI settings, or `None`.
`static_ip_interface` returns the first interface that has a static IP, or
`None`.

## Dialing a guest over vsock

```python
from microvmkit.vsock.dial import DialConfig, dial

conn = dial("/tmp/v.sock", 52, DialConfig(retry_timeout=5.0))
```

`dial` connects to the monitor's Unix socket, sends `CONNECT <port>\n` and
expects a reply line that starts with `OK `. It retries temporary failures,
such as a missing or malformed acknowledgement (`AckError`), every
`retry_interval` seconds. Once `retry_timeout` seconds have passed, it raises
`TimeoutError`. Any other failure, such as a failed write of the CONNECT
message (`ConnectMsgError`), raises `ConnectionError` straight away.
`try_connect` makes a single attempt and does not retry.

## Accepting connections in the guest

```python
from microvmkit.vsock.listener import listen

with listen(52) as listener:
    conn = listener.accept()
```

`listen` raises `OSError` on platforms without `AF_VSOCK`. `accept` retries
temporary failures until `retry_timeout` passes and then raises
`TimeoutError`. Any other failure raises `ConnectionError`.

## What this package does not do

This package does not launch or supervise a monitor process. In particular it
does not:

- start the process;
- wait for its control socket;
- forward signals to it;
- capture its log pipes;
- send API requests that configure or boot a VM.

It also has no command-line program. It provides the data classes,
validation and vsock helpers that such tooling would use.