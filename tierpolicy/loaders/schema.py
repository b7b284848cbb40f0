"""
Pydantic schemas for policy documents.

Two root documents, one per policy flavour:
    SecurityGroupPolicyDocument - network_tiers.security_groups own rules
    NetworkAclPolicyDocument    - network_tiers.subnet_groups own rules, plus
                                  allow_ephemeral and ipv6 flags

Schemas check structure and address syntax only; tier and traffic type
references are checked by the engine.
"""
from typing import Annotated, List, Optional, Union

from netaddr import AddrFormatError, IPNetwork
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from ..net import validate_ipv4_cidr


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class PortRangeSchema(_StrictModel):
    """`{from, to}` port range."""
    from_port: StrictInt = Field(..., alias="from")
    to_port: StrictInt = Field(..., alias="to")


PortSchema = Union[StrictInt, PortRangeSchema]
NameList = Annotated[List[str], Field(min_length=1)]


class TrafficRuleSchema(_StrictModel):
    """Traffic rule shorthand."""
    source: Union[str, NameList]
    destination: Union[str, NameList]
    port: Optional[Union[PortSchema, Annotated[List[PortSchema], Field(min_length=1)]]] = None
    protocol: Optional[Union[StrictInt, str]] = None
    traffic_type: Optional[Union[str, NameList]] = None
    description: Optional[str] = None


class SecurityGroupSchema(_StrictModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    allow_all_to_self: Optional[bool] = None
    security_group_id: Optional[str] = None


class SubnetGroupSchema(_StrictModel):
    name: str = Field(..., min_length=1)
    subnet_ids: Optional[List[str]] = None
    network_acl_id: Optional[str] = None
    allow_all_to_self: Optional[bool] = None
    public: bool = False
    nat_gateway: bool = False
    ipv6: bool = False


class CidrBlockSchema(_StrictModel):
    name: str = Field(..., min_length=1)
    cidr_blocks: Optional[List[str]] = None

    @field_validator("cidr_blocks")
    @classmethod
    def validate_cidr_blocks(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Validate IPv4 CIDR syntax."""
        for cidr in v or []:
            if not validate_ipv4_cidr(cidr):
                raise ValueError(f"Invalid IPv4 CIDR block: {cidr}")
        return v


class Ipv6CidrBlockSchema(_StrictModel):
    name: str = Field(..., min_length=1)
    ipv6_cidr_blocks: Optional[List[str]] = None

    @field_validator("ipv6_cidr_blocks")
    @classmethod
    def validate_ipv6_cidr_blocks(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Validate IPv6 CIDR syntax with netaddr."""
        for cidr in v or []:
            try:
                IPNetwork(cidr, version=6)
            except (AddrFormatError, ValueError, TypeError):
                raise ValueError(f"Invalid IPv6 CIDR block: {cidr}") from None
        return v


class PrefixListSchema(_StrictModel):
    name: str = Field(..., min_length=1)
    prefix_list_ids: Optional[List[str]] = None


class SecurityGroupNetworkTiersSchema(_StrictModel):
    security_groups: Annotated[List[SecurityGroupSchema], Field(min_length=1)]
    cidr_blocks: List[CidrBlockSchema] = Field(default_factory=list)
    ipv6_cidr_blocks: List[Ipv6CidrBlockSchema] = Field(default_factory=list)
    prefix_lists: List[PrefixListSchema] = Field(default_factory=list)


class NetworkAclNetworkTiersSchema(_StrictModel):
    subnet_groups: Annotated[List[SubnetGroupSchema], Field(min_length=1)]
    cidr_blocks: List[CidrBlockSchema] = Field(default_factory=list)
    ipv6_cidr_blocks: List[Ipv6CidrBlockSchema] = Field(default_factory=list)


class SecurityGroupPolicyDocument(_StrictModel):
    """Security group policy document."""
    network_tiers: SecurityGroupNetworkTiersSchema
    traffic_rules: Annotated[List[TrafficRuleSchema], Field(min_length=1)]
    allow_all_to_self: bool = True


class NetworkAclPolicyDocument(_StrictModel):
    """Network ACL policy document."""
    network_tiers: NetworkAclNetworkTiersSchema
    traffic_rules: Annotated[List[TrafficRuleSchema], Field(min_length=1)]
    allow_all_to_self: bool = True
    allow_ephemeral: bool = True
    ipv6: bool = False
