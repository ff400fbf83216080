import re
import logging
from typing import List, Optional

from errors import MalformedAddress

ONION_SUFFIX = ".onion"
V3_ADDRESS_LENGTH = 56

# Tor v3 addresses only. v2 (16 chars) is deprecated and insecure.
_BASE32_PATTERN = re.compile(r"^[a-z2-7]+$")
_SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def address_part(addr: str) -> str:
    """Returns the label in front of the .onion suffix (or addr unchanged)."""
    if addr.endswith(ONION_SUFFIX):
        return addr[:-len(ONION_SUFFIX)]
    return addr


def has_onion_suffix(addr: str) -> bool:
    return addr.endswith(ONION_SUFFIX)


def has_v3_length(addr: str) -> bool:
    return len(address_part(addr)) == V3_ADDRESS_LENGTH


def has_base32_alphabet(addr: str) -> bool:
    return bool(_BASE32_PATTERN.match(address_part(addr)))


ADDRESS_CHECKS = {
    "suffix": has_onion_suffix,
    "length": has_v3_length,
    "alphabet": has_base32_alphabet,
}


def failed_address_checks(addr: str) -> List[str]:
    """Names of the checks addr fails, in evaluation order."""
    return [name for name, check in ADDRESS_CHECKS.items() if not check(addr)]


def is_valid_onion_address(addr: str) -> bool:
    """
    Checks if the string is a syntactically valid v3 onion address.

    Args:
        addr (str): Bare host, e.g. "<56 base32 chars>.onion".

    Returns:
        bool: True if the suffix, length and alphabet checks all pass.
    """
    return not failed_address_checks(addr)


def require_valid_onion_address(addr: str) -> str:
    failed = failed_address_checks(addr)
    if failed:
        raise MalformedAddress(addr, failed)
    return addr


def extract_host(url: str) -> str:
    """
    Strips scheme, path, query, fragment and port to get the bare host.

    Args:
        url (str): A full URL or a bare host.

    Returns:
        str: The host part, e.g. "<addr>.onion".
    """
    host = url.split("://")[-1]
    for separator in ("/", "?", "#"):
        host = host.split(separator)[0]
    return host.split(":")[0]


def is_valid_onion_url(url: str) -> bool:
    return is_valid_onion_address(extract_host(url))


def normalize_onion_url(raw: Optional[str]) -> Optional[str]:
    """
    Turns a directory entry into a URL suitable for the snapshot.

    Entries without a scheme get http:// since many onion sites don't
    serve HTTPS. Blank entries and bare ".onion" placeholders (used for
    projects whose onion service is still in progress) yield None.
    """
    if raw is None:
        return None
    raw = raw.strip()
    if not raw or raw == ONION_SUFFIX:
        return None
    if _SCHEME_PATTERN.match(raw):
        return raw
    return f"http://{raw}"


# --- Usage Example ---
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(message)s')

    raw_links = [
        "http://duckduckgogg42xjoc72x3sjasowoarfbgcmvfimaftt6twagswzczad.onion", # Valid (DuckDuckGo)
        "http://invalid-address.onion",                                           # Invalid Syntax
        "http://v2deprecatedonionaddress.onion",                                  # Invalid (Short v2)
    ]

    for link in raw_links:
        failed = failed_address_checks(extract_host(link))
        if failed:
            logging.warning(f"[!] Invalid syntax ({', '.join(failed)}): {link}")
        else:
            logging.info(f"[+] Valid: {link}")
