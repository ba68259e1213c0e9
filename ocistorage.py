import pulumi
import pulumi_oci as oci
from typing import Optional

from config import StorageConfig
from errors import MissingFieldError, NilContextError
from ocibase import BuildContext


class StorageBuilder:
    """Creates a compartment and an object storage bucket inside it.

    Independent of the network/compute topology; only used when the YAML
    document has a ``storage`` section.
    """

    def __init__(self, config: StorageConfig):
        self.config = config
        self.compartment: Optional[oci.identity.Compartment] = None
        self.bucket: Optional[oci.objectstorage.Bucket] = None

    def validate(self) -> None:
        for field_name in ("compartment_id", "compartment_name", "bucket_name"):
            if not getattr(self.config, field_name):
                raise MissingFieldError(f"storage.{field_name}")

    def create_compartment(self, context: BuildContext) -> oci.identity.Compartment:
        self.compartment = oci.identity.Compartment(
            self.config.compartment_name,
            name=self.config.compartment_name,
            description=self.config.compartment_description,
            compartment_id=self.config.compartment_id,
            enable_delete=self.config.enable_delete,
            freeform_tags=context.tags(self.config.freeform_tags),
            opts=context.resource_options(self.config.region),
        )
        context.add_resource_to_cache("compartment", self.config.compartment_name, self.compartment)
        pulumi.log.info(f"Created compartment: {self.config.compartment_name}")
        return self.compartment

    def create_bucket(self, context: BuildContext, compartment: oci.identity.Compartment) -> oci.objectstorage.Bucket:
        # The tenancy namespace is only known once the parent compartment id resolves.
        namespace = oci.objectstorage.get_namespace_output(
            compartment_id=compartment.compartment_id,
            opts=context.invoke_options(self.config.region),
        ).namespace

        self.bucket = oci.objectstorage.Bucket(
            self.config.bucket_name,
            name=self.config.bucket_name,
            namespace=namespace,
            compartment_id=compartment.id,
            freeform_tags=context.tags(self.config.freeform_tags),
            opts=context.resource_options(self.config.region),
        )
        context.add_resource_to_cache("bucket", self.config.bucket_name, self.bucket)
        pulumi.log.info(f"Created bucket: {self.config.bucket_name}")
        return self.bucket

    def build(self, context: BuildContext) -> oci.objectstorage.Bucket:
        if context is None:
            raise NilContextError()
        self.validate()
        compartment = self.create_compartment(context)
        return self.create_bucket(context, compartment)
