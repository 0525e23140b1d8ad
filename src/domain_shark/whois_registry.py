"""
WHOIS Registry - supported TLDs with their servers, query syntax and parsers.

Only registries without a structured registration-data (RDAP) service are
listed here. WHOIS replies have no common grammar, so every server gets a
dedicated parser selecting one of available/taken/unknown from textual
markers. Parsers test the "free" marker first: several registries echo the
queried name in a ``Domain:`` line even when it is unregistered.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from .enums import AvailabilityStatus

AVAILABLE = AvailabilityStatus.AVAILABLE
TAKEN = AvailabilityStatus.TAKEN
UNKNOWN = AvailabilityStatus.UNKNOWN

QueryFormatter = Callable[[str], str]
ResponseParser = Callable[[str], AvailabilityStatus]


@dataclass(frozen=True)
class WHOISServerProfile:
    """Static description of one registry's WHOIS service."""

    tld: str
    hostname: str
    query_formatter: QueryFormatter
    response_parser: ResponseParser


def _line(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.MULTILINE | re.IGNORECASE)


# ============================================================================
# QUERY FORMATTERS
# ============================================================================

def plain_query(domain: str) -> str:
    return f"{domain}\r\n"


def denic_query(domain: str) -> str:
    # DENIC only returns the status block for the -T dn,ace type
    return f"-T dn,ace {domain}\r\n"


def jprs_query(domain: str) -> str:
    # "/e" suppresses Japanese-language output
    return f"{domain}/e\r\n"


# ============================================================================
# RESPONSE PARSERS
# ============================================================================

_DENIC_FREE = _line(r"^Status:\s*free\b")
_DENIC_TAKEN = _line(r"^(Status:\s*connect\b|Domain(\s+Name)?:\s*\S)")


def parse_denic(text: str) -> AvailabilityStatus:
    """whois.denic.de (.de)"""
    if _DENIC_FREE.search(text):
        return AVAILABLE
    if _DENIC_TAKEN.search(text):
        return TAKEN
    return UNKNOWN


_EURID_FREE = _line(r"^\s*Status:\s*AVAILABLE\b")
_EURID_TAKEN = _line(r"^\s*(Registrar:|Name servers:|Technical:)")


def parse_eurid(text: str) -> AvailabilityStatus:
    """whois.eu (.eu)"""
    if _EURID_FREE.search(text):
        return AVAILABLE
    if _EURID_TAKEN.search(text):
        return TAKEN
    return UNKNOWN


_NIC_IT_FREE = _line(r"^Status:\s*AVAILABLE\s*$")
_NIC_IT_STATUS = _line(r"^Status:\s*\S")


def parse_nic_it(text: str) -> AvailabilityStatus:
    """whois.nic.it (.it); any status other than AVAILABLE means registered."""
    if _NIC_IT_FREE.search(text):
        return AVAILABLE
    if _NIC_IT_STATUS.search(text):
        return TAKEN
    return UNKNOWN


_DNS_BE_TAKEN = _line(r"^(Status:\s*NOT AVAILABLE\b|Registered:)")
_DNS_BE_FREE = _line(r"^Status:\s*AVAILABLE\b")


def parse_dns_be(text: str) -> AvailabilityStatus:
    """whois.dns.be (.be)"""
    # "NOT AVAILABLE" contains the free marker, so test it first
    if _DNS_BE_TAKEN.search(text):
        return TAKEN
    if _DNS_BE_FREE.search(text):
        return AVAILABLE
    return UNKNOWN


_SWITCH_TAKEN = _line(r"^(Holder of domain name:|Domain name:)")


def parse_switch(text: str) -> AvailabilityStatus:
    """whois.nic.ch (.ch)"""
    if "We do not have an entry in our database matching your query" in text:
        return AVAILABLE
    if _SWITCH_TAKEN.search(text):
        return TAKEN
    return UNKNOWN


_NIC_AT_TAKEN = _line(r"^domain:\s*\S")


def parse_nic_at(text: str) -> AvailabilityStatus:
    """whois.nic.at (.at)"""
    if "nothing found" in text.lower():
        return AVAILABLE
    if _NIC_AT_TAKEN.search(text):
        return TAKEN
    return UNKNOWN


def parse_jprs(text: str) -> AvailabilityStatus:
    """whois.jprs.jp (.jp)"""
    if "No match!!" in text:
        return AVAILABLE
    if "[Domain Name]" in text:
        return TAKEN
    return UNKNOWN


_TCINET_TAKEN = _line(r"^(state:\s*\S|domain:\s*\S)")


def parse_tcinet(text: str) -> AvailabilityStatus:
    """whois.tcinet.ru (.ru)"""
    if "No entries found" in text:
        return AVAILABLE
    if _TCINET_TAKEN.search(text):
        return TAKEN
    return UNKNOWN


_IIS_FREE = _line(r'^domain\s+"[^"]+"\s+not found\.')
_IIS_TAKEN = _line(r"^(state:\s*\S|domain:\s*\S)")


def parse_iis(text: str) -> AvailabilityStatus:
    """whois.iis.se (.se)"""
    if _IIS_FREE.search(text):
        return AVAILABLE
    if _IIS_TAKEN.search(text):
        return TAKEN
    return UNKNOWN


_DOMAIN_NAME_FIELD = _line(r"^\s*Domain Name\s*:\s*\S")


def parse_hkirc(text: str) -> AvailabilityStatus:
    """whois.hkirc.hk (.hk)"""
    if "has not been registered" in text:
        return AVAILABLE
    if _DOMAIN_NAME_FIELD.search(text):
        return TAKEN
    return UNKNOWN


def parse_twnic(text: str) -> AvailabilityStatus:
    """whois.twnic.net.tw (.tw)"""
    if "No Found" in text:
        return AVAILABLE
    if _DOMAIN_NAME_FIELD.search(text):
        return TAKEN
    return UNKNOWN


_KISA_FREE = re.compile(r"(was not found|is not registered)", re.IGNORECASE)


def parse_kisa(text: str) -> AvailabilityStatus:
    """whois.kr (.kr); field names are padded before the colon."""
    if _KISA_FREE.search(text):
        return AVAILABLE
    if _DOMAIN_NAME_FIELD.search(text):
        return TAKEN
    return UNKNOWN


def parse_cnnic(text: str) -> AvailabilityStatus:
    """whois.cnnic.cn (.cn)"""
    if "No matching record" in text:
        return AVAILABLE
    if _DOMAIN_NAME_FIELD.search(text):
        return TAKEN
    return UNKNOWN


# ============================================================================
# REGISTRY
# ============================================================================

_PROFILES = [
    WHOISServerProfile("de", "whois.denic.de", denic_query, parse_denic),
    WHOISServerProfile("eu", "whois.eu", plain_query, parse_eurid),
    WHOISServerProfile("it", "whois.nic.it", plain_query, parse_nic_it),
    WHOISServerProfile("be", "whois.dns.be", plain_query, parse_dns_be),
    WHOISServerProfile("ch", "whois.nic.ch", plain_query, parse_switch),
    WHOISServerProfile("at", "whois.nic.at", plain_query, parse_nic_at),
    WHOISServerProfile("jp", "whois.jprs.jp", jprs_query, parse_jprs),
    WHOISServerProfile("ru", "whois.tcinet.ru", plain_query, parse_tcinet),
    WHOISServerProfile("se", "whois.iis.se", plain_query, parse_iis),
    WHOISServerProfile("hk", "whois.hkirc.hk", plain_query, parse_hkirc),
    WHOISServerProfile("tw", "whois.twnic.net.tw", plain_query, parse_twnic),
    WHOISServerProfile("kr", "whois.kr", plain_query, parse_kisa),
    WHOISServerProfile("cn", "whois.cnnic.cn", plain_query, parse_cnnic),
]

WHOIS_SERVERS: Mapping[str, WHOISServerProfile] = MappingProxyType(
    {profile.tld: profile for profile in _PROFILES}
)

SUPPORTED_TLDS: frozenset[str] = frozenset(WHOIS_SERVERS)


def get_profile(tld: str) -> Optional[WHOISServerProfile]:
    """Look up the profile for a TLD (case-insensitive)."""
    return WHOIS_SERVERS.get(tld.lower())
