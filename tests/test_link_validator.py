"""Tests for v3 onion address validation."""

from __future__ import annotations

import pytest

from errors import MalformedAddress
from link_validator import (
    address_part,
    extract_host,
    failed_address_checks,
    has_base32_alphabet,
    has_onion_suffix,
    has_v3_length,
    is_valid_onion_address,
    is_valid_onion_url,
    normalize_onion_url,
    require_valid_onion_address,
)
from tests.conftest import DDG_ADDRESS, V3_ADDRESS


def test_valid_v3_address() -> None:
    assert is_valid_onion_address(V3_ADDRESS)
    assert len(address_part(V3_ADDRESS)) == 56


def test_short_address_invalid() -> None:
    assert not is_valid_onion_address("short.onion")
    assert failed_address_checks("short.onion") == ["length"]


def test_uppercase_address_invalid() -> None:
    upper = V3_ADDRESS[:-6].upper() + ".onion"
    assert has_onion_suffix(upper)
    assert has_v3_length(upper)
    assert not has_base32_alphabet(upper)
    assert not is_valid_onion_address(upper)


def test_missing_suffix_invalid() -> None:
    assert not is_valid_onion_address("nofile")
    assert "suffix" in failed_address_checks("nofile")


def test_v2_address_invalid() -> None:
    assert not is_valid_onion_address("expyuzz4wqqyqhjn.onion")


@pytest.mark.parametrize("digit", ["0", "1", "8", "9"])
def test_non_base32_digits_invalid(digit: str) -> None:
    addr = digit + V3_ADDRESS[1:]
    assert has_v3_length(addr)
    assert not is_valid_onion_address(addr)


def test_total_on_odd_input() -> None:
    for value in ["", ".onion", "   ", "http://", "a" * 500]:
        assert is_valid_onion_address(value) is False


def test_require_valid_raises_with_failed_checks() -> None:
    with pytest.raises(MalformedAddress) as exc:
        require_valid_onion_address("Short.onion")
    assert exc.value.failed_checks == ("length", "alphabet")
    assert require_valid_onion_address(V3_ADDRESS) == V3_ADDRESS


def test_extract_host_strips_url_parts() -> None:
    assert extract_host(f"http://{DDG_ADDRESS}:8080/search?q=x#top") == DDG_ADDRESS
    assert extract_host(DDG_ADDRESS) == DDG_ADDRESS
    assert is_valid_onion_url(f"https://{DDG_ADDRESS}/")
    assert not is_valid_onion_url("http://invalid-address.onion")


def test_normalize_onion_url() -> None:
    assert normalize_onion_url(V3_ADDRESS) == f"http://{V3_ADDRESS}"
    assert normalize_onion_url(f"https://{V3_ADDRESS}") == f"https://{V3_ADDRESS}"
    assert normalize_onion_url(".onion") is None
    assert normalize_onion_url("  ") is None
    assert normalize_onion_url(None) is None
