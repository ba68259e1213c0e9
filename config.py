"""
This module defines the data structures for our OCI YAML-Based Infrastructure Builder.
The YAML document is loaded once by load_config() into frozen dataclasses that every
builder receives by reference.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from errors import ConfigValidationError

SECTIONS = ("network", "compute", "bastion", "heatwave", "storage")
INHERITED_KEYS = ("compartment_id", "region", "freeform_tags")


def _str(data: Dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    return str(value)


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return None if value is None else str(value)


def _optional_float(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"{key} must be a number, got {value!r}")


def _bool(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = _optional_bool(data, key)
    return default if value is None else value


def _optional_bool(data: Dict[str, Any], key: str) -> Optional[bool]:
    # Only YAML booleans are accepted, not strings such as "false".
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise ConfigValidationError(f"{key} must be true or false, got {value!r}")


def _mapping(value: Any, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"{where} must be a mapping, got {type(value).__name__}")
    return value


def _sequence(value: Any, where: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigValidationError(f"{where} must be a list, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class BaseConfig:
    compartment_id: str = ""
    region: Optional[str] = None
    freeform_tags: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def base_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "compartment_id": _str(data, "compartment_id"),
            "region": _optional_str(data, "region"),
            "freeform_tags": {str(k): str(v) for k, v in _mapping(data.get("freeform_tags"), "freeform_tags").items()},
        }


@dataclass(frozen=True)
class SubnetConfig:
    name: str
    cidr_block: str
    dns_label: Optional[str] = None
    prohibit_public_ip_on_vnic: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubnetConfig":
        data = _mapping(data, "subnet")
        return cls(
            name=_str(data, "name"),
            cidr_block=_str(data, "cidr_block"),
            dns_label=_optional_str(data, "dns_label"),
            prohibit_public_ip_on_vnic=_optional_bool(data, "prohibit_public_ip_on_vnic"),
        )


@dataclass(frozen=True)
class TCPOptionConfig:
    min_port: int
    max_port: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TCPOptionConfig":
        data = _mapping(data, "tcp_options entry")
        try:
            return cls(min_port=int(data["min_port"]), max_port=int(data["max_port"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigValidationError(f"tcp_options entries need integer min_port and max_port: {e}")


@dataclass(frozen=True)
class SecurityListConfig:
    display_name: str
    protocol: str
    description: str = ""
    destination: Optional[str] = None
    source: Optional[str] = None
    stateless: bool = False
    tcp_options: Tuple[TCPOptionConfig, ...] = ()
    # Plain name match against SubnetConfig.name, only used to attach lists to subnets.
    subnet_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityListConfig":
        data = _mapping(data, "security list")
        return cls(
            display_name=_str(data, "display_name"),
            protocol=_str(data, "protocol"),
            description=_str(data, "description"),
            destination=_optional_str(data, "destination"),
            source=_optional_str(data, "source"),
            stateless=_bool(data, "stateless", False),
            tcp_options=tuple(TCPOptionConfig.from_dict(t) for t in _sequence(data.get("tcp_options"), "tcp_options")),
            subnet_name=_str(data, "subnet_name"),
        )


@dataclass(frozen=True)
class NetworkConfig(BaseConfig):
    cidr_block: str = ""
    display_name: str = ""
    dns_label: Optional[str] = None
    subnets: Tuple[SubnetConfig, ...] = ()
    security_lists: Tuple[SecurityListConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NetworkConfig":
        return cls(
            cidr_block=_str(data, "cidr_block"),
            display_name=_str(data, "display_name"),
            dns_label=_optional_str(data, "dns_label"),
            subnets=tuple(SubnetConfig.from_dict(s) for s in _sequence(data.get("subnets"), "network.subnets")),
            security_lists=tuple(
                SecurityListConfig.from_dict(s) for s in _sequence(data.get("security_lists"), "network.security_lists")
            ),
            **cls.base_kwargs(data),
        )

    def validate(self) -> None:
        """Check subnet names are unique and every subnet_name tag names a configured subnet."""
        seen = set()
        for subnet in self.subnets:
            if subnet.name in seen:
                raise ConfigValidationError(f"duplicate subnet name: {subnet.name}")
            seen.add(subnet.name)

        for sl in self.security_lists:
            if sl.subnet_name and sl.subnet_name not in seen:
                raise ConfigValidationError(
                    f"security list {sl.display_name} references unknown subnet {sl.subnet_name}"
                )


@dataclass(frozen=True)
class InstanceConfig:
    name: str
    shape: str = ""
    subnet_id: str = ""
    image_id: str = ""
    ssh_public_key: str = ""
    display_name: str = ""
    ocpu_count: Optional[float] = None
    memory_gb: Optional[float] = None
    availability_domain: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_shape: str = "") -> "InstanceConfig":
        data = _mapping(data, "instance")
        return cls(
            name=_str(data, "name"),
            shape=_str(data, "shape", default_shape),
            subnet_id=_str(data, "subnet_id"),
            image_id=_str(data, "image_ocid"),
            ssh_public_key=_str(data, "ssh_public_key"),
            display_name=_str(data, "display_name"),
            ocpu_count=_optional_float(data, "ocpu_count"),
            memory_gb=_optional_float(data, "memory_gb"),
            availability_domain=_optional_str(data, "availability_domain"),
        )


@dataclass(frozen=True)
class ComputeConfig(BaseConfig):
    instance_shape: str = ""
    availability_domain: Optional[str] = None
    instances: Tuple[InstanceConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComputeConfig":
        instance_shape = _str(data, "instance_shape")
        return cls(
            instance_shape=instance_shape,
            availability_domain=_optional_str(data, "availability_domain"),
            instances=tuple(
                InstanceConfig.from_dict(i, instance_shape) for i in _sequence(data.get("instances"), "compute.instances")
            ),
            **cls.base_kwargs(data),
        )


@dataclass(frozen=True)
class BastionConfig(BaseConfig):

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BastionConfig":
        return cls(**cls.base_kwargs(data))


@dataclass(frozen=True)
class HeatwaveConfig(BaseConfig):

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HeatwaveConfig":
        return cls(**cls.base_kwargs(data))


@dataclass(frozen=True)
class StorageConfig(BaseConfig):
    compartment_name: str = ""
    compartment_description: str = ""
    enable_delete: bool = True
    bucket_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageConfig":
        return cls(
            compartment_name=_str(data, "compartment_name"),
            compartment_description=_str(data, "compartment_description", _str(data, "compartment_name")),
            enable_delete=_bool(data, "enable_delete", True),
            bucket_name=_str(data, "bucket_name"),
            **cls.base_kwargs(data),
        )


@dataclass(frozen=True)
class Config:
    network: NetworkConfig = field(default_factory=NetworkConfig)
    compute: ComputeConfig = field(default_factory=ComputeConfig)
    bastion: BastionConfig = field(default_factory=BastionConfig)
    heatwave: HeatwaveConfig = field(default_factory=HeatwaveConfig)
    storage: Optional[StorageConfig] = None

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> "Config":
        config_data = _mapping(config_data, "configuration")
        sections = {name: _inherit(config_data, name) for name in SECTIONS}
        config = cls(
            network=NetworkConfig.from_dict(sections["network"]),
            compute=ComputeConfig.from_dict(sections["compute"]),
            bastion=BastionConfig.from_dict(sections["bastion"]),
            heatwave=HeatwaveConfig.from_dict(sections["heatwave"]),
            storage=StorageConfig.from_dict(sections["storage"]) if config_data.get("storage") is not None else None,
        )
        config.network.validate()
        return config


def _inherit(config_data: Dict[str, Any], section: str) -> Dict[str, Any]:
    # Top-level compartment_id/region/freeform_tags are defaults for every section.
    section_data = dict(_mapping(config_data.get(section), section))
    for key in INHERITED_KEYS:
        if section_data.get(key) is None and config_data.get(key) is not None:
            section_data[key] = config_data[key]
    return section_data


def load_config(file_path: str) -> Config:
    """Load and validate YAML configuration from the given file path."""
    with open(file_path, "r") as file:
        config_data = yaml.safe_load(file)

    if config_data is None:
        raise ConfigValidationError(f"Configuration file {file_path} is empty")

    return Config.from_dict(config_data)
