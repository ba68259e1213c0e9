import pulumi
import pulumi_oci as oci
from automapper import mapper
from typing import List, Optional

from config import ComputeConfig, InstanceConfig
from errors import IndexOutOfRangeError, MissingFieldError, NilContextError, NotFoundError, ProviderError
from ocibase import BuildContext

REQUIRED_INSTANCE_FIELDS = (
    ("name", "name"),
    ("shape", "shape"),
    ("subnet_id", "subnet_id"),
    ("image_id", "image_ocid"),
    ("ssh_public_key", "ssh_public_key"),
)


def validate_compute_config(config: ComputeConfig) -> None:
    """Raise MissingFieldError for the first empty required field, else return None."""
    if not config.compartment_id:
        raise MissingFieldError("compartment_id")

    if not config.instances:
        raise MissingFieldError("instances")

    for i, instance in enumerate(config.instances):
        for attr, yaml_key in REQUIRED_INSTANCE_FIELDS:
            if not getattr(instance, attr):
                raise MissingFieldError(yaml_key, i)


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def shape_config_args(instance: InstanceConfig) -> Optional[oci.core.InstanceShapeConfigArgs]:
    # Flex shapes take explicit sizing; fixed shapes must omit the block.
    ocpus = _positive(instance.ocpu_count)
    memory_in_gbs = _positive(instance.memory_gb)
    if ocpus is None and memory_in_gbs is None:
        return None
    return mapper.to(oci.core.InstanceShapeConfigArgs).map(
        instance, use_deepcopy=False, skip_none_values=True,
        fields_mapping={"ocpus": ocpus, "memory_in_gbs": memory_in_gbs},
    )


class ComputeBuilder:

    def __init__(self, config: ComputeConfig):
        self.config = config

    def validate(self) -> None:
        validate_compute_config(self.config)

    def _require_instances(self):
        if not self.config.instances:
            raise MissingFieldError("instances")

    def _availability_domain(self, context: BuildContext, instance: InstanceConfig) -> pulumi.Input[str]:
        availability_domain = instance.availability_domain or self.config.availability_domain
        if availability_domain:
            return availability_domain

        pulumi.log.debug(f"No availability domain configured for '{instance.name}'; using the first one")
        domains = oci.identity.get_availability_domains_output(
            compartment_id=self.config.compartment_id,
            opts=context.invoke_options(self.config.region),
        )
        return domains.availability_domains.apply(lambda ads: ads[0].name)

    def create_instance(self, context: BuildContext, instance_index: int) -> oci.core.Instance:
        if context is None:
            raise NilContextError()

        if instance_index < 0 or instance_index >= len(self.config.instances):
            raise IndexOutOfRangeError("instance", instance_index, len(self.config.instances))

        instance = self.config.instances[instance_index]
        display_name = instance.display_name or instance.name

        resource = oci.core.Instance(
            instance.name,
            compartment_id=self.config.compartment_id,
            shape=instance.shape,
            availability_domain=self._availability_domain(context, instance),
            display_name=display_name,
            source_details=oci.core.InstanceSourceDetailsArgs(
                source_type="image",
                source_id=context.resolve(instance.image_id),
            ),
            create_vnic_details=oci.core.InstanceCreateVnicDetailsArgs(
                subnet_id=context.resolve(instance.subnet_id),
            ),
            metadata={
                "ssh_authorized_keys": context.resolve(instance.ssh_public_key),
            },
            shape_config=shape_config_args(instance),
            freeform_tags=context.tags(self.config.freeform_tags),
            opts=context.resource_options(self.config.region),
        )
        context.add_resource_to_cache("instance", instance.name, resource)
        pulumi.log.info(f"Created instance: {instance.name} ({instance.shape})")
        return resource

    def create_all_instances(self, context: BuildContext) -> List[oci.core.Instance]:
        self._require_instances()
        if context is None:
            raise NilContextError()
        instances = []
        for i, instance in enumerate(self.config.instances):
            try:
                instances.append(self.create_instance(context, i))
            except Exception as e:
                raise ProviderError(instance.name, e, kind="instance") from e
        return instances

    def create_instances_in_subnet(self, context: BuildContext, subnet_id: str) -> List[oci.core.Instance]:
        self._require_instances()
        if context is None:
            raise NilContextError()
        instances = []
        for i, instance in enumerate(self.config.instances):
            if instance.subnet_id != subnet_id:
                continue
            try:
                instances.append(self.create_instance(context, i))
            except Exception as e:
                raise ProviderError(f"{instance.name} in subnet {subnet_id}", e, kind="instance") from e
        return instances

    def get_instance(self, name: str) -> InstanceConfig:
        for instance in self.config.instances:
            if instance.name == name:
                return instance
        raise NotFoundError("instance", name)
