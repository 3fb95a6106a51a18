"""
Coarse IP-to-region lookup for access analytics.

This is a static first-octet table, not a GeoIP database. It only needs to
give the stats endpoint a rough, stable label per visitor.
"""

import ipaddress
import logging
import re

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown"
PRIVATE_LOCATION = "Local/Private Network"

# (first octet upper bound, region), checked in order
_REGIONS = (
    (50, "North America"),
    (100, "Europe"),
    (150, "Asia"),
    (200, "South America"),
    (230, "Africa"),
)

_IPV4_MAPPED_PREFIX = re.compile(r"^::ffff:", re.IGNORECASE)


def clean_ip(ip_address: str) -> str:
    """Strip an IPv4-mapped IPv6 prefix and a trailing :port."""
    cleaned = _IPV4_MAPPED_PREFIX.sub("", ip_address.strip())
    if cleaned.count(":") == 1:
        cleaned = cleaned.split(":")[0]
    return cleaned


def is_local_or_private(ip_address: str) -> bool:
    if not ip_address or ip_address == "localhost":
        return True
    try:
        address = ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    return address.is_loopback or address.is_private or address.is_link_local


def get_location_from_ip(ip_address: str) -> str:
    """
    Map a client IP to a coarse region label.

    Returns:
        "Local/Private Network" for empty, loopback or private addresses,
        "Unknown" for anything that is not a public IPv4 address,
        otherwise a region derived from the first octet
    """
    cleaned = clean_ip(ip_address or "")

    if is_local_or_private(cleaned):
        return PRIVATE_LOCATION

    parts = cleaned.split(".")
    if len(parts) != 4 or not all(part.isdigit() for part in parts):
        return UNKNOWN_LOCATION

    first_octet = int(parts[0])
    location = "Oceania"
    for upper_bound, region in _REGIONS:
        if first_octet <= upper_bound:
            location = region
            break

    logger.debug("IP %s mapped to location: %s", cleaned, location)
    return location
