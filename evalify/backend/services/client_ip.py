"""
Evalify Quiz Attempt Service
Client IP resolution behind proxies and lab subnet checks
"""

import ipaddress
import logging
from typing import Iterable, Mapping, Optional

# Configure logging
logger = logging.getLogger(__name__)

# Checked in order; the first non-empty header wins
FORWARDED_IP_HEADERS = (
    "x-real-ip",
    "x-forwarded-for",
    "cf-connecting-ip",
    "fastly-client-ip",
    "true-client-ip",
    "x-client-ip",
    "x-cluster-client-ip",
    "x-forward",
)

UNKNOWN_IP = "unknown"
IPV4_MAPPED_PREFIX = "::ffff:"


def strip_ipv4_mapped_prefix(ip: str) -> str:
    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        return ip[len(IPV4_MAPPED_PREFIX):]
    return ip


def resolve_client_ip(headers: Mapping[str, str], peer_host: Optional[str] = None) -> str:
    """Originating client address for a request

    ``headers`` must support case-insensitive lookup (Starlette ``Headers``
    does); ``x-forwarded-for`` contributes its first hop only.
    """
    for name in FORWARDED_IP_HEADERS:
        value = headers.get(name)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        if candidate:
            return strip_ipv4_mapped_prefix(candidate)

    if peer_host:
        return strip_ipv4_mapped_prefix(peer_host)

    return UNKNOWN_IP


def is_ip_in_subnet(client_ip: str, subnet: str) -> bool:
    """Whether an IPv4 address falls inside a CIDR block; malformed input is a miss"""
    try:
        network = ipaddress.IPv4Network(subnet, strict=False)
        return ipaddress.IPv4Address(strip_ipv4_mapped_prefix(client_ip)) in network
    except ValueError as e:
        logger.warning(f"Subnet check failed for {client_ip} in {subnet}: {e}")
        return False


def is_client_in_subnets(client_ip: Optional[str], subnets: Iterable[str]) -> bool:
    """Lab-network check for proctoring tooling; the attempt routes only record the IP"""
    subnets = [subnet for subnet in subnets if subnet]
    if not client_ip or not subnets:
        return False
    return any(is_ip_in_subnet(client_ip, subnet) for subnet in subnets)


__all__ = [
    "FORWARDED_IP_HEADERS",
    "UNKNOWN_IP",
    "strip_ipv4_mapped_prefix",
    "resolve_client_ip",
    "is_ip_in_subnet",
    "is_client_in_subnets",
]
