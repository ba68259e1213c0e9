"""Tests for the optional compartment and bucket collaborator."""

import pulumi
import pytest

from conftest import TEST_COMPARTMENT_ID, TEST_NAMESPACE
from config import StorageConfig
from errors import MissingFieldError, NilContextError
from ocistorage import StorageBuilder


def storage_config(**overrides) -> StorageConfig:
    fields = dict(
        compartment_id=TEST_COMPARTMENT_ID,
        compartment_name="my-compartment",
        compartment_description="My description text",
        bucket_name="my-bucket",
    )
    fields.update(overrides)
    return StorageConfig(**fields)


class TestStorageBuilder:
    """Tests for StorageBuilder.build."""

    def test_nil_context(self) -> None:
        """A missing context is rejected."""
        with pytest.raises(NilContextError):
            StorageBuilder(storage_config()).build(None)

    @pytest.mark.parametrize("field", ["compartment_id", "compartment_name", "bucket_name"])
    def test_missing_field(self, context, field) -> None:
        """Required names must be present."""
        with pytest.raises(MissingFieldError, match=f"storage.{field}"):
            StorageBuilder(storage_config(**{field: ""})).build(context)

    @pulumi.runtime.test
    def test_compartment(self, context):
        """The compartment is created under the configured parent."""
        builder = StorageBuilder(storage_config())
        builder.build(context)

        def check(args):
            name, description, parent, enable_delete = args
            assert name == "my-compartment"
            assert description == "My description text"
            assert parent == TEST_COMPARTMENT_ID
            assert enable_delete is True

        compartment = builder.compartment
        return pulumi.Output.all(
            compartment.name, compartment.description, compartment.compartment_id, compartment.enable_delete
        ).apply(check)

    @pulumi.runtime.test
    def test_bucket(self, context):
        """The bucket lives in the new compartment and the looked-up namespace."""
        bucket = StorageBuilder(storage_config()).build(context)

        def check(args):
            name, namespace, compartment_id = args
            assert name == "my-bucket"
            assert namespace == TEST_NAMESPACE
            assert compartment_id == "my-compartment_id"

        return pulumi.Output.all(bucket.name, bucket.namespace, bucket.compartment_id).apply(check)
