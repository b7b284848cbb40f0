"""
Traffic Type Catalog

Named port/protocol definitions ("ssh", "https", "all_tcp", ...) and the
protocol number table, with lookups in both directions.

Catalog entries are written in shorthand, the same shorthand traffic rules
use: a bare integer is a TCP port, a mapping carries `port` or
`from_port`/`to_port` and an optional protocol. Entries are normalized on
lookup. Declaration order matters: reverse lookup returns the first match,
so "mysql" wins over "aurora" (both 3306/tcp).
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from ..errors import UnknownProtocol, UnknownTrafficType


TCP = 6

PROTOCOL_NUMBERS: Mapping[str, int] = MappingProxyType({
    'icmp': 1,
    'tcp': TCP,
    'udp': 17,
    'icmp_ipv6': 58,
})

KNOWN_TRAFFIC_TYPES: Mapping[str, Any] = MappingProxyType({
    'all': {'from_port': 0, 'to_port': 65535, 'protocol': -1},
    'all_tcp': {'from_port': 0, 'to_port': 65535, 'protocol': 6},
    'all_udp': {'from_port': 0, 'to_port': 65535, 'protocol': 17},
    'icmp': {'from_port': 0, 'to_port': 65535, 'protocol': 1},
    'icmp_ipv6': {'from_port': 0, 'to_port': 65535, 'protocol': 58},
    'ssh': 22,
    'smtp': 25,
    'dns_udp': {'protocol': 17, 'port': 53},
    'dns': 53,
    'http': 80,
    'pop3': 110,
    'imap': 143,
    'ldap': 389,
    'https': 443,
    'smb': 445,
    'smtps': 465,
    'imaps': 993,
    'pop3s': 995,
    'mssql': 1433,
    'nfs': 2049,
    'mysql': 3306,
    'aurora': 3306,
    'rdp': 3389,
    'redshift': 5439,
    'postgresql': 5432,
    'oracle': 1521,
    'winrm_http': 5985,
    'winrm_https': 5986,
    'elastic_graphics': 2007,
})


Protocol = Union[int, str]


@dataclass(frozen=True)
class TrafficType:
    """
    Canonical (from_port, to_port, protocol) triple.

    protocol is an IP protocol number; it only stays a string when a rule
    names a protocol the catalog does not know.
    """
    from_port: int
    to_port: int
    protocol: Protocol

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from_port': self.from_port,
            'to_port': self.to_port,
            'protocol': self.protocol,
        }


class TrafficTypeCatalog:
    """
    Read-only lookup table of named traffic types and protocol numbers.

    Usage:
        CATALOG.lookup_by_name('https')          # TrafficType(443, 443, 6)
        CATALOG.identify_by_type(TrafficType(22, 22, 6))  # 'ssh'
        CATALOG.normalize({'port': 53, 'protocol': 'udp'})
    """

    def __init__(self, traffic_types: Mapping[str, Any], protocol_numbers: Mapping[str, int]):
        self._protocol_numbers = dict(protocol_numbers)
        self._protocol_names = {}
        for name, number in self._protocol_numbers.items():
            self._protocol_names.setdefault(number, name)

        # Normalize once; dict keeps declaration order for reverse lookups
        self._traffic_types: Dict[str, TrafficType] = {
            name: self.normalize(value) for name, value in traffic_types.items()
        }

    def __contains__(self, name: object) -> bool:
        return name in self._traffic_types

    def __iter__(self) -> Iterator[Tuple[str, TrafficType]]:
        return iter(self._traffic_types.items())

    def __len__(self) -> int:
        return len(self._traffic_types)

    def lookup_by_name(self, name: str) -> TrafficType:
        traffic_type = self._traffic_types.get(name)
        if traffic_type is None:
            raise UnknownTrafficType(name)
        return traffic_type

    def normalize(self, value: Any) -> TrafficType:
        """
        Normalize traffic type shorthand.

        Args:
            value: A port number (TCP implied), a TrafficType, or a mapping
                with `port` or `from_port`/`to_port` and an optional
                `protocol` (number or protocol name, default TCP)

        Returns:
            TrafficType with known protocol names replaced by their number

        Raises:
            ValueError: If value is none of the accepted shapes
        """
        if isinstance(value, TrafficType):
            return TrafficType(value.from_port, value.to_port, self._protocol_value(value.protocol))

        if isinstance(value, int) and not isinstance(value, bool):
            return TrafficType(value, value, TCP)

        if isinstance(value, Mapping):
            port = value.get('port')
            from_port = value.get('from_port', port)
            to_port = value.get('to_port', port)
            protocol = value.get('protocol')
            return TrafficType(from_port, to_port, self._protocol_value(protocol))

        raise ValueError(f"Invalid traffic type {value!r}")

    def identify_by_type(self, traffic_type: Any) -> Optional[str]:
        """Return the first catalog name whose definition equals traffic_type."""
        probe = self.normalize(traffic_type)
        for name, known in self._traffic_types.items():
            if known == probe:
                return name
        return None

    def protocol_number(self, name: str) -> int:
        number = self._protocol_numbers.get(name)
        if number is None:
            raise UnknownProtocol(name)
        return number

    def protocol_name(self, number: Any) -> Optional[str]:
        if isinstance(number, bool) or not isinstance(number, int):
            return None
        return self._protocol_names.get(number)

    def _protocol_value(self, protocol: Optional[Protocol]) -> Protocol:
        if protocol is None:
            return TCP
        if isinstance(protocol, str):
            return self._protocol_numbers.get(protocol, protocol)
        return protocol


CATALOG = TrafficTypeCatalog(KNOWN_TRAFFIC_TYPES, PROTOCOL_NUMBERS)
