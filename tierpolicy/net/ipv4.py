"""
IPv4 CIDR Arithmetic

Bit-level helpers for IPv4 addresses held as unsigned 32-bit integers packed
big-endian from four dotted octets. Python integers are unbounded, so every
operation that can produce bits above bit 31 (complement, shifts) is masked
with UINT32 to keep the fixed-width semantics exact at prefix 0 and 32.

Functions:
    bitmask: bits [start, end] set, as an unsigned 32-bit value
    cidr_prefix_to_mask / mask_to_prefix: prefix length <-> subnet mask
    wildcard: unsigned 32-bit complement of a mask
    parse_cidr: CIDR text -> CidrInfo (masks, network start and end)
    range_to_cidr: aligned address range -> CIDR text
    consolidate: merge overlapping or touching address ranges

Example:
    >>> parse_cidr('10.0.0.0/24').end_ipv4
    '10.0.0.255'
    >>> range_to_cidr('10.0.0.0', '10.0.1.255')
    '10.0.0.0/23'
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..errors import InvalidCidr, InvalidIpv4, UnrepresentableCidrRange


UINT32 = 0xFFFFFFFF

OCTET_PATTERN = r'25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9]'
IPV4_PATTERN = r'({0})\.({0})\.({0})\.({0})'.format(OCTET_PATTERN)
PREFIX_PATTERN = r'3[0-2]|[1-2][0-9]|[0-9]'

IPV4_REGEX = re.compile(r'^{}$'.format(IPV4_PATTERN))
IPV4_CIDR_REGEX = re.compile(
    r'^(?P<ipv4>{})/(?P<prefix>{})$'.format(IPV4_PATTERN, PREFIX_PATTERN)
)

Address = Union[int, str]


@dataclass(frozen=True)
class CidrInfo:
    """
    Parsed IPv4 CIDR block.

    Attributes:
        cidr: Original CIDR text
        ipv4: Base address text as written (may be inside the block)
        ipv4_int: Base address as an integer
        prefix: Prefix length (0-32)
        subnet_mask_int / wildcard_mask_int: Masks as integers
        start_ipv4_int / end_ipv4_int: First and last address of the block
    """
    cidr: str
    ipv4: str
    ipv4_int: int
    prefix: int
    subnet_mask_int: int
    wildcard_mask_int: int
    start_ipv4_int: int
    end_ipv4_int: int

    @property
    def subnet_mask(self) -> str:
        return int_to_ipv4(self.subnet_mask_int)

    @property
    def wildcard_mask(self) -> str:
        return int_to_ipv4(self.wildcard_mask_int)

    @property
    def start_ipv4(self) -> str:
        return int_to_ipv4(self.start_ipv4_int)

    @property
    def end_ipv4(self) -> str:
        return int_to_ipv4(self.end_ipv4_int)

    @property
    def start(self) -> int:
        return self.start_ipv4_int

    @property
    def end(self) -> int:
        return self.end_ipv4_int

    def to_dict(self) -> dict:
        return {
            'cidr': self.cidr,
            'ipv4': self.ipv4,
            'ipv4_int': self.ipv4_int,
            'prefix': self.prefix,
            'subnet_mask': self.subnet_mask,
            'subnet_mask_int': self.subnet_mask_int,
            'wildcard_mask': self.wildcard_mask,
            'wildcard_mask_int': self.wildcard_mask_int,
            'start_ipv4_int': self.start_ipv4_int,
            'end_ipv4_int': self.end_ipv4_int,
            'start_ipv4': self.start_ipv4,
            'end_ipv4': self.end_ipv4,
        }


@dataclass(frozen=True)
class Ipv4Range:
    """Inclusive address range [start, end] held as integers."""
    start: int
    end: int

    @classmethod
    def of(cls, start: Address, end: Address) -> 'Ipv4Range':
        return cls(_as_int(start), _as_int(end))

    @property
    def start_ipv4(self) -> str:
        return int_to_ipv4(self.start)

    @property
    def end_ipv4(self) -> str:
        return int_to_ipv4(self.end)

    def to_dict(self) -> dict:
        return {
            'start_ipv4_int': self.start,
            'end_ipv4_int': self.end,
            'start_ipv4': self.start_ipv4,
            'end_ipv4': self.end_ipv4,
        }


def validate_ipv4(ipv4: str) -> bool:
    return isinstance(ipv4, str) and IPV4_REGEX.match(ipv4) is not None


def validate_ipv4_cidr(cidr: str) -> bool:
    return isinstance(cidr, str) and IPV4_CIDR_REGEX.match(cidr) is not None


def ipv4_to_int(ipv4: str) -> int:
    """Pack a dotted-quad address into an unsigned 32-bit integer."""
    matches = IPV4_REGEX.match(ipv4) if isinstance(ipv4, str) else None
    if matches is None:
        raise InvalidIpv4(ipv4)

    value = 0
    value |= int(matches.group(1)) << 24
    value |= int(matches.group(2)) << 16
    value |= int(matches.group(3)) << 8
    value |= int(matches.group(4))
    return value & UINT32


def int_to_ipv4(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT32:
        raise InvalidIpv4(value)

    octets = (
        (value & 0xFF000000) >> 24,
        (value & 0x00FF0000) >> 16,
        (value & 0x0000FF00) >> 8,
        value & 0x000000FF,
    )
    return '.'.join(str(octet) for octet in octets)


def bitmask(start: int, end: int) -> int:
    """Return an unsigned 32-bit value with bits start..end (inclusive) set."""
    mask = 0
    for i in range(start, end + 1):
        mask |= 1 << i
    return mask & UINT32


def cidr_prefix_to_mask(prefix: int) -> int:
    return bitmask(32 - prefix, 32 - 1)


def wildcard(mask: int) -> int:
    return ~mask & UINT32


def mask_to_prefix(mask: int) -> Optional[int]:
    """
    Convert a subnet mask to its prefix length.

    Returns None when the mask is not a contiguous prefix mask
    (e.g. 255.0.255.0).
    """
    for prefix in range(0, 33):
        if cidr_prefix_to_mask(prefix) == mask:
            return prefix
    return None


def parse_cidr(cidr: str) -> CidrInfo:
    """
    Parse IPv4 CIDR text into its masks and network range.

    Args:
        cidr: CIDR text such as '10.1.2.3/16'

    Returns:
        CidrInfo; the start address is the network address, so a base
        address inside the block ('10.1.2.3/16') still yields 10.1.0.0.

    Raises:
        InvalidCidr: If the text is not a well-formed IPv4 CIDR
    """
    matches = IPV4_CIDR_REGEX.match(cidr) if isinstance(cidr, str) else None
    if matches is None:
        raise InvalidCidr(cidr)

    ipv4 = matches.group('ipv4')
    ipv4_int = ipv4_to_int(ipv4)
    prefix = int(matches.group('prefix'))
    subnet_mask_int = cidr_prefix_to_mask(prefix)
    wildcard_mask_int = wildcard(subnet_mask_int)

    start_ipv4_int = ipv4_int & subnet_mask_int
    end_ipv4_int = start_ipv4_int | wildcard_mask_int

    return CidrInfo(
        cidr=cidr,
        ipv4=ipv4,
        ipv4_int=ipv4_int,
        prefix=prefix,
        subnet_mask_int=subnet_mask_int,
        wildcard_mask_int=wildcard_mask_int,
        start_ipv4_int=start_ipv4_int,
        end_ipv4_int=end_ipv4_int,
    )


def ipv4_in_range(ipv4: Address, ipv4_range: Ipv4Range) -> bool:
    value = _as_int(ipv4)
    return ipv4_range.start <= value <= ipv4_range.end


def ipv4_in_cidr(ipv4: Address, cidr: str) -> bool:
    info = parse_cidr(cidr)
    return info.start_ipv4_int <= _as_int(ipv4) <= info.end_ipv4_int


def range_subnet_mask(start: Address, end: Address) -> int:
    """Implied subnet mask of a range: bits where start and end agree."""
    return wildcard(_as_int(start)) ^ _as_int(end)


def range_to_cidr(start: Address, end: Address) -> str:
    """
    Express the inclusive range [start, end] as a single CIDR block.

    Raises:
        UnrepresentableCidrRange: If the implied mask is not a prefix mask or
            the block is not aligned on start (10.0.0.1-10.0.0.2 has a /30
            shaped mask but 10.0.0.1/30 would cover 10.0.0.0-10.0.0.3)
    """
    start_int = _as_int(start)
    end_int = _as_int(end)

    prefix = mask_to_prefix(range_subnet_mask(start_int, end_int))
    if prefix is None or start_int & wildcard(cidr_prefix_to_mask(prefix)):
        raise UnrepresentableCidrRange(int_to_ipv4(start_int), int_to_ipv4(end_int))

    return f"{int_to_ipv4(start_int)}/{prefix}"


def consolidate(ranges: Iterable[Union[Ipv4Range, Tuple[Address, Address]]],
                legacy_overlap: bool = False) -> List[Ipv4Range]:
    """
    Merge overlapping or touching ranges in a single left-to-right pass.

    Each incoming range is merged into the first accumulated range it
    overlaps or touches (min start, max end); otherwise it is appended.
    One pass only: a later range bridging two accumulated ranges merges into
    the first of them and the two are not re-joined.

    Args:
        ranges: Ipv4Range values or (start, end) pairs of ints or dotted quads
        legacy_overlap: Use the historical overlap test
            (new.start <= acc.end and new.end <= acc.start). It is
            asymmetric: touching ranges in ascending order are never merged
            and partial overlaps are only detected when the new range starts
            first.

    Returns:
        Consolidated ranges in first-seen order
    """
    overlaps = _legacy_overlaps if legacy_overlap else _overlaps_or_touches
    consolidated: List[Ipv4Range] = []

    for item in ranges:
        incoming = item if isinstance(item, Ipv4Range) else Ipv4Range.of(*item)

        for index, existing in enumerate(consolidated):
            if overlaps(incoming, existing):
                consolidated[index] = Ipv4Range(
                    min(incoming.start, existing.start),
                    max(incoming.end, existing.end),
                )
                break
        else:
            consolidated.append(incoming)

    return consolidated


def ranges_to_cidrs(ranges: Sequence[Ipv4Range]) -> List[str]:
    """Convert each range to CIDR text, failing on the first unaligned range."""
    return [range_to_cidr(r.start, r.end) for r in ranges]


def _overlaps_or_touches(incoming: Ipv4Range, existing: Ipv4Range) -> bool:
    return incoming.start <= existing.end + 1 and existing.start <= incoming.end + 1


def _legacy_overlaps(incoming: Ipv4Range, existing: Ipv4Range) -> bool:
    return incoming.start <= existing.end and incoming.end <= existing.start


def _as_int(address: Address) -> int:
    if isinstance(address, str):
        return ipv4_to_int(address)
    if isinstance(address, bool) or not isinstance(address, int) or not 0 <= address <= UINT32:
        raise InvalidIpv4(address)
    return address
