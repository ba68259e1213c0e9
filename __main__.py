import pulumi
from typing import Any, Callable, Dict

from config import Config, load_config
from ocibase import BuildContext, export_key
from ocicompute import ComputeBuilder
from ocinetwork import NetworkBuilder
from ocistorage import StorageBuilder

DEFAULT_CONFIG_FILE = "config.yaml"


def run_step(step: str, func: Callable[..., Any], *args, **kwargs) -> Any:
    try:
        return func(*args, **kwargs)
    except Exception as e:
        pulumi.log.error(f"Failed to {step}: {e}")
        raise


def build(config: Config, context: BuildContext) -> Dict[str, Any]:
    """Create the topology described by config and return the outputs to export."""
    outputs: Dict[str, Any] = {}

    network = NetworkBuilder(config.network)
    vcn = run_step("create VCN", network.create_vcn, context)
    outputs["vcn_id"] = vcn.id

    security_lists = run_step("create security lists", network.create_security_list_map, context, vcn.id)
    for i, security_list in enumerate(security_lists.values()):
        outputs[export_key("security-list", i)] = security_list.id

    subnets = run_step(
        "create subnets", network.create_all_subnets_with_security_lists, context, vcn.id, security_lists
    )
    for i, subnet in enumerate(subnets):
        outputs[export_key("subnet", i)] = subnet.id

    compute = ComputeBuilder(config.compute)
    run_step("validate compute configuration", compute.validate)
    instances = run_step("create compute instances", compute.create_all_instances, context)
    for i, instance in enumerate(instances):
        outputs[export_key("instance", i)] = instance.id

    if config.storage is not None:
        bucket = run_step("create storage", StorageBuilder(config.storage).build, context)
        outputs["bucket_name"] = bucket.name

    return outputs


def main():
    pulumi_config = pulumi.Config()
    config_file = pulumi_config.get("configFile") or DEFAULT_CONFIG_FILE

    # Load YAML configuration.
    config = run_step(f"load configuration from {config_file}", load_config, config_file)
    context = BuildContext(stack=pulumi.get_stack(), stack_region=pulumi.Config("oci").get("region"))

    outputs = build(config, context)

    for name, value in outputs.items():
        pulumi.export(name, value)


if __name__ == "__main__":
    main()
