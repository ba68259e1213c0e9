import pulumi
import pulumi_oci as oci
from automapper import mapper
from typing import Dict, List, Optional, Sequence, Tuple

from config import NetworkConfig, SecurityListConfig, TCPOptionConfig
from errors import IndexOutOfRangeError, NilContextError, ProviderError
from ocibase import BuildContext, is_set

EgressRules = List[oci.core.SecurityListEgressSecurityRuleArgs]
IngressRules = List[oci.core.SecurityListIngressSecurityRuleArgs]


def _tcp_option_args(args_cls, tcp_options: Tuple[TCPOptionConfig, ...]) -> list:
    # One rule per configured port range; no ranges means a protocol-level rule.
    if not tcp_options:
        return [None]
    return [
        mapper.to(args_cls).map(tcp, use_deepcopy=False, fields_mapping={"min": tcp.min_port, "max": tcp.max_port})
        for tcp in tcp_options
    ]


def build_security_rules(sl: SecurityListConfig) -> Tuple[EgressRules, IngressRules]:
    """Map one security list entry to its egress and ingress rule arguments.

    Egress rules exist only when ``destination`` is set, ingress rules only when
    ``source`` is set. An entry may carry both.
    """
    egress_rules: EgressRules = []
    ingress_rules: IngressRules = []

    if is_set(sl.destination):
        for tcp in _tcp_option_args(oci.core.SecurityListEgressSecurityRuleTcpOptionsArgs, sl.tcp_options):
            egress_rules.append(mapper.to(oci.core.SecurityListEgressSecurityRuleArgs).map(
                sl, use_deepcopy=False, skip_none_values=True,
                fields_mapping={"destination_type": "CIDR_BLOCK", "tcp_options": tcp},
            ))

    if is_set(sl.source):
        for tcp in _tcp_option_args(oci.core.SecurityListIngressSecurityRuleTcpOptionsArgs, sl.tcp_options):
            ingress_rules.append(mapper.to(oci.core.SecurityListIngressSecurityRuleArgs).map(
                sl, use_deepcopy=False, skip_none_values=True,
                fields_mapping={"source_type": "CIDR_BLOCK", "tcp_options": tcp},
            ))

    return egress_rules, ingress_rules


class NetworkBuilder:
    """Builds the VCN, its security lists and its subnets from a NetworkConfig."""

    def __init__(self, config: NetworkConfig):
        self.config = config

    def _check_context(self, context: Optional[BuildContext]):
        if context is None:
            raise NilContextError()

    def create_vcn(self, context: BuildContext, name: Optional[str] = None) -> oci.core.Vcn:
        self._check_context(context)
        name = name or self.config.display_name
        vcn_args = mapper.to(oci.core.VcnArgs).map(
            self.config, use_deepcopy=False, skip_none_values=True,
            fields_mapping={"freeform_tags": context.tags(self.config.freeform_tags)},
        )
        vcn = oci.core.Vcn(name, vcn_args, opts=context.resource_options(self.config.region))
        context.add_resource_to_cache("vcn", name, vcn)
        pulumi.log.info(f"Created VCN: {name} ({self.config.cidr_block})")
        return vcn

    # region Security lists
    def _create_security_list(self, context: BuildContext, sl: SecurityListConfig,
                              vcn_id: pulumi.Input[str]) -> oci.core.SecurityList:
        egress_rules, ingress_rules = build_security_rules(sl)
        security_list = oci.core.SecurityList(
            sl.display_name,
            compartment_id=self.config.compartment_id,
            vcn_id=vcn_id,
            display_name=sl.display_name,
            egress_security_rules=egress_rules or None,
            ingress_security_rules=ingress_rules or None,
            freeform_tags=context.tags(self.config.freeform_tags),
            opts=context.resource_options(self.config.region),
        )
        context.add_resource_to_cache("security_list", sl.display_name, security_list)
        pulumi.log.info(
            f"Created security list: {sl.display_name} "
            f"(egress={len(egress_rules)}, ingress={len(ingress_rules)})"
        )
        return security_list

    def create_security_lists(self, context: BuildContext, vcn_id: pulumi.Input[str]) -> List[oci.core.SecurityList]:
        self._check_context(context)
        return [self._create_security_list(context, sl, vcn_id) for sl in self.config.security_lists]

    def create_security_list_map(self, context: BuildContext,
                                 vcn_id: pulumi.Input[str]) -> Dict[str, oci.core.SecurityList]:
        """Create the security lists keyed by display name.

        Display names are expected to be unique. A repeated name replaces the
        earlier entry in the returned map (last write wins).
        """
        self._check_context(context)
        security_lists: Dict[str, oci.core.SecurityList] = {}
        for sl in self.config.security_lists:
            if sl.display_name in security_lists:
                pulumi.log.warn(f"Duplicate security list display name '{sl.display_name}'; keeping the last one")
            security_lists[sl.display_name] = self._create_security_list(context, sl, vcn_id)
        return security_lists
    # endregion

    # region Subnet attachment
    def subnet_security_list_names(self) -> Dict[str, List[str]]:
        names: Dict[str, List[str]] = {}
        for sl in self.config.security_lists:
            if sl.subnet_name:
                names.setdefault(sl.subnet_name, []).append(sl.display_name)
        return names

    def resolve_security_list_ids(self, subnet_name: str,
                                  security_lists_by_name: Dict[str, oci.core.SecurityList]) -> List[pulumi.Output[str]]:
        ids = []
        for name in self.subnet_security_list_names().get(subnet_name, []):
            security_list = security_lists_by_name.get(name)
            if security_list is None:
                pulumi.log.warn(f"Security list '{name}' for subnet '{subnet_name}' was not created; skipping")
                continue
            ids.append(security_list.id)
        return ids
    # endregion

    # region Subnets
    def create_subnet(self, context: BuildContext, subnet_index: int, vcn_id: pulumi.Input[str],
                      security_list_ids: Optional[Sequence[pulumi.Input[str]]] = None) -> oci.core.Subnet:
        self._check_context(context)
        if subnet_index < 0 or subnet_index >= len(self.config.subnets):
            raise IndexOutOfRangeError("subnet", subnet_index, len(self.config.subnets))

        subnet = self.config.subnets[subnet_index]
        resource = oci.core.Subnet(
            subnet.name,
            compartment_id=self.config.compartment_id,
            cidr_block=subnet.cidr_block,
            display_name=subnet.name,
            vcn_id=vcn_id,
            dns_label=subnet.dns_label,
            prohibit_public_ip_on_vnic=subnet.prohibit_public_ip_on_vnic,
            security_list_ids=list(security_list_ids) if security_list_ids else None,
            freeform_tags=context.tags(self.config.freeform_tags),
            opts=context.resource_options(self.config.region),
        )
        context.add_resource_to_cache("subnet", subnet.name, resource)
        pulumi.log.info(f"Created subnet: {subnet.name} ({subnet.cidr_block})")
        return resource

    def create_all_subnets(self, context: BuildContext, vcn_id: pulumi.Input[str],
                           security_list_ids: Optional[Sequence[pulumi.Input[str]]] = None) -> List[oci.core.Subnet]:
        self._check_context(context)
        return [
            self.create_subnet(context, i, vcn_id, security_list_ids)
            for i in range(len(self.config.subnets))
        ]

    def create_all_subnets_with_security_lists(
            self, context: BuildContext, vcn_id: pulumi.Input[str],
            security_lists_by_name: Dict[str, oci.core.SecurityList]) -> List[oci.core.Subnet]:
        self._check_context(context)
        subnets = []
        for i, subnet in enumerate(self.config.subnets):
            security_list_ids = self.resolve_security_list_ids(subnet.name, security_lists_by_name)
            try:
                subnets.append(self.create_subnet(context, i, vcn_id, security_list_ids))
            except Exception as e:
                raise ProviderError(subnet.name, e, kind="subnet") from e
        return subnets
    # endregion
