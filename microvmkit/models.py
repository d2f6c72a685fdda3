"""Data models for the VMM control API payloads."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Type, TypeVar

_M = TypeVar("_M", bound="_Model")


def _nested(model: type) -> Dict[str, Any]:
    return {"model": model}


class _Model:
    """Mixin giving dataclasses a JSON-ready dict form that drops unset fields."""

    def to_dict(self) -> Dict[str, Any]:
        """Return the API representation, omitting fields that are None."""
        result: Dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, _Model):
                value = value.to_dict()
            elif isinstance(value, list):
                value = [v.to_dict() if isinstance(v, _Model) else v for v in value]
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls: Type[_M], data: Dict[str, Any]) -> _M:
        """Build an instance from its API representation; unknown keys are ignored."""
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            if f.name not in data:
                continue
            value = data[f.name]
            model = f.metadata.get("model")
            if model is not None and isinstance(value, dict):
                value = model.from_dict(value)
            elif isinstance(value, list):
                value = list(value)
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass
class TokenBucket(_Model):
    """A token bucket: capacity, initial burst and refill time in milliseconds."""

    size: Optional[int] = None
    one_time_burst: Optional[int] = None
    refill_time: Optional[int] = None


@dataclass
class RateLimiter(_Model):
    """A pair of token buckets limiting bandwidth and operations."""

    bandwidth: Optional[TokenBucket] = field(default=None, metadata=_nested(TokenBucket))
    ops: Optional[TokenBucket] = field(default=None, metadata=_nested(TokenBucket))


@dataclass
class Drive(_Model):
    """A block device made available to the guest."""

    drive_id: Optional[str] = None
    path_on_host: Optional[str] = None
    is_root_device: Optional[bool] = None
    is_read_only: Optional[bool] = None
    partuuid: Optional[str] = None
    rate_limiter: Optional[RateLimiter] = field(default=None, metadata=_nested(RateLimiter))


@dataclass
class MachineConfiguration(_Model):
    """vCPU count, memory size and CPU features of the microVM."""

    vcpu_count: Optional[int] = None
    mem_size_mib: Optional[int] = None
    smt: Optional[bool] = None
    cpu_template: Optional[str] = None
    track_dirty_pages: Optional[bool] = None


@dataclass
class LoggerConfig(_Model):
    """Where and how verbosely the VMM writes its log."""

    log_path: Optional[str] = None
    level: Optional[str] = None
    show_level: Optional[bool] = None
    show_log_origin: Optional[bool] = None


@dataclass
class MetricsConfig(_Model):
    """Where the VMM writes its metrics."""

    metrics_path: Optional[str] = None


@dataclass
class BootSource(_Model):
    """Kernel image, optional initrd and kernel command line."""

    kernel_image_path: Optional[str] = None
    initrd_path: Optional[str] = None
    boot_args: Optional[str] = None


@dataclass
class VsockConfig(_Model):
    """A vsock device between host and guest."""

    guest_cid: Optional[int] = None
    uds_path: Optional[str] = None
    vsock_id: Optional[str] = None


@dataclass
class MmdsConfig(_Model):
    """Metadata service address and the interfaces allowed to reach it."""

    network_interfaces: List[str] = field(default_factory=list)
    ipv4_address: Optional[str] = None