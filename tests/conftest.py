import pulumi
import pytest

TEST_AVAILABILITY_DOMAIN = "Uocm:PHX-AD-1"
TEST_NAMESPACE = "test-namespace"


class OciMocks(pulumi.runtime.Mocks):

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        return [args.name + "_id", args.inputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        if "getAvailabilityDomains" in args.token:
            return {
                "availabilityDomains": [
                    {"compartmentId": "compartment-123", "id": "ad-1", "name": TEST_AVAILABILITY_DOMAIN},
                ],
            }
        if "getNamespace" in args.token:
            return {"namespace": TEST_NAMESPACE}
        return args.args


pulumi.runtime.set_mocks(OciMocks(), project="oci-infra", stack="test", preview=False)

from config import (  # noqa: E402
    ComputeConfig,
    InstanceConfig,
    NetworkConfig,
    SecurityListConfig,
    SubnetConfig,
    TCPOptionConfig,
)
from ocibase import BuildContext  # noqa: E402

TEST_COMPARTMENT_ID = "compartment-123"
TEST_SUBNET_ID = "subnet-123"
TEST_IMAGE_OCID = "ocid1.image.oc1..example"
TEST_SSH_PUBLIC_KEY = "ssh-rsa AAAAB3NzaC1yc2E..."


def make_instance(name: str, **overrides) -> InstanceConfig:
    fields = dict(
        name=name,
        shape="VM.Standard.E4.Flex",
        subnet_id=TEST_SUBNET_ID,
        image_id=TEST_IMAGE_OCID,
        ssh_public_key=TEST_SSH_PUBLIC_KEY,
    )
    fields.update(overrides)
    return InstanceConfig(**fields)


def make_compute_config(instances, compartment_id: str = TEST_COMPARTMENT_ID, **overrides) -> ComputeConfig:
    fields = dict(compartment_id=compartment_id, availability_domain="ad-1", instances=tuple(instances))
    fields.update(overrides)
    return ComputeConfig(**fields)


def make_network_config(**overrides) -> NetworkConfig:
    fields = dict(
        compartment_id=TEST_COMPARTMENT_ID,
        cidr_block="10.0.0.0/16",
        display_name="test-vcn",
        subnets=(
            SubnetConfig(name="public", cidr_block="10.0.1.0/24"),
            SubnetConfig(name="private", cidr_block="10.0.2.0/24"),
        ),
        security_lists=(
            SecurityListConfig(
                display_name="public-ingress",
                protocol="6",
                description="Allow HTTP/HTTPS/SSH access",
                source="0.0.0.0/0",
                tcp_options=(TCPOptionConfig(22, 22),),
                subnet_name="public",
            ),
            SecurityListConfig(
                display_name="shared-egress",
                protocol="all",
                description="Allow all outbound traffic",
                destination="0.0.0.0/0",
            ),
            SecurityListConfig(
                display_name="private-ingress",
                protocol="6",
                description="SSH from the VCN",
                source="10.0.0.0/16",
                subnet_name="private",
            ),
            SecurityListConfig(
                display_name="public-egress",
                protocol="all",
                description="Outbound from public",
                destination="0.0.0.0/0",
                subnet_name="public",
            ),
        ),
    )
    fields.update(overrides)
    return NetworkConfig(**fields)


@pytest.fixture
def context() -> BuildContext:
    return BuildContext(stack="test")


def output_field(value, key: str):
    """Read a field of a nested resource output; mocks return these as dicts."""
    if isinstance(value, dict):
        return value.get(key)
    return getattr(value, key)
