import pulumi
import pulumi_oci as oci
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from errors import NotFoundError

UNSET_VALUES = (None, "", "null")


def is_set(value: Optional[str]) -> bool:
    """YAML sources write optional CIDRs as empty, null or the string "null"."""
    return value not in UNSET_VALUES


def export_key(prefix: str, index: int) -> str:
    return f"{prefix}-{index}"


def resolve_value(value: Any, resources: Dict[str, Any]) -> Any:
    if isinstance(value, str):
        if value.startswith("secret:"):
            # Fetch secret from Pulumi config
            secret_key = value[len("secret:"):]
            config = pulumi.Config()
            return config.require_secret(secret_key)
        elif value.startswith("ref:"):
            ref_text = value[4:]
            if "." in ref_text:
                ref_res, ref_attr = ref_text.split(".", 1)
            else:
                ref_res, ref_attr = ref_text, "id"
            if ref_res not in resources:
                raise NotFoundError("referenced resource", ref_res)
            attr_val = getattr(resources[ref_res], ref_attr, None)
            if attr_val is None:
                raise NotFoundError("attribute", f"{ref_attr} on resource {ref_res}")
            return attr_val
    return value


# Stack config keys of the default oci provider, copied onto explicit providers.
PROVIDER_SETTINGS = (
    ("auth", "auth", False),
    ("config_file_profile", "configFileProfile", False),
    ("tenancy_ocid", "tenancyOcid", False),
    ("user_ocid", "userOcid", False),
    ("fingerprint", "fingerprint", False),
    ("private_key_path", "privateKeyPath", False),
    ("private_key", "privateKey", True),
    ("private_key_password", "privateKeyPassword", True),
)


def cache_key(kind: str, name: str) -> str:
    """Cached resources are addressed as ``<kind>:<name>``, e.g. ``ref:subnet:public``."""
    return f"{kind}:{name}"


@dataclass
class BuildContext:
    """Handle passed to every builder call: providers and created resources.

    ``stack_region`` is the stack's ``oci:region``; sections in that region
    (or without one) use the default provider.
    """
    stack: str
    stack_region: Optional[str] = None

    resource_cache: Dict[str, pulumi.CustomResource] = field(init=False, repr=False, default_factory=dict)
    providers: Dict[str, oci.Provider] = field(init=False, repr=False, default_factory=dict)

    def add_resource_to_cache(self, kind: str, name: str, resource: pulumi.CustomResource):
        key = cache_key(kind, name)
        if key in self.resource_cache:
            pulumi.log.debug(f"Replacing cached resource '{key}'")
        self.resource_cache[key] = resource

    def get_resource_from_cache(self, kind: str, name: str) -> Optional[pulumi.CustomResource]:
        return self.resource_cache.get(cache_key(kind, name))

    def resolve(self, value: Any) -> Any:
        return resolve_value(value, self.resource_cache)

    def get_default_resource_name(self, unique_identifier: str) -> str:
        return f"{self.stack}-{unique_identifier}"

    def tags(self, section_tags: Optional[Dict[str, str]] = None) -> Optional[Dict[str, str]]:
        return dict(section_tags) if section_tags else None

    def provider_settings(self) -> Dict[str, Any]:
        oci_config = pulumi.Config("oci")
        settings = {}
        for arg, key, secret in PROVIDER_SETTINGS:
            value = oci_config.get_secret(key) if secret else oci_config.get(key)
            if value is not None:
                settings[arg] = value
        return settings

    def provider(self, region: Optional[str]) -> Optional[oci.Provider]:
        if not region or region == self.stack_region:
            return None
        if region not in self.providers:
            self.providers[region] = oci.Provider(
                self.get_default_resource_name(f"oci-{region}"), region=region, **self.provider_settings()
            )
            pulumi.log.info(f"Created provider for region {region}")
        return self.providers[region]

    def resource_options(self, region: Optional[str] = None, **kwargs) -> Optional[pulumi.ResourceOptions]:
        provider = self.provider(region)
        if provider is None and not kwargs:
            return None
        return pulumi.ResourceOptions(provider=provider, **kwargs)

    def invoke_options(self, region: Optional[str] = None) -> Optional[pulumi.InvokeOptions]:
        provider = self.provider(region)
        return pulumi.InvokeOptions(provider=provider) if provider else None
