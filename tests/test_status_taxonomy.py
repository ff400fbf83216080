"""Tests for status classification and display mapping."""

from __future__ import annotations

import pytest

from errors import UnrecognizedStatus
from status_taxonomy import (
    ErrorWithCode,
    Offline,
    Online,
    Unknown,
    classify,
    color_for,
    is_recognized,
    label_for,
    status_from_http_code,
)


def test_classify_error_carries_code() -> None:
    result = classify("error-502")
    assert result == ErrorWithCode(code="502")
    assert result.label == "Error 502"
    assert result.color == "orange"


def test_classify_online() -> None:
    assert classify("online") == Online()
    assert color_for("online") == "green"
    assert label_for("online") == "Online"


def test_classify_offline() -> None:
    assert classify("offline") == Offline()
    assert color_for("offline") == "red"
    assert label_for("offline") == "Offline"


@pytest.mark.parametrize("status", ["weird", "unknown", "", "Online", "error-"])
def test_unrecognized_degrades_to_unknown(status: str) -> None:
    assert classify(status) == Unknown()
    assert color_for(status) == "gray"
    assert label_for(status) == "Unknown"


def test_strict_classification_raises_for_unrecognized() -> None:
    with pytest.raises(UnrecognizedStatus):
        classify("weird", strict=True)


def test_strict_classification_accepts_unknown() -> None:
    assert classify("unknown", strict=True) == Unknown()


def test_is_recognized() -> None:
    assert is_recognized("online")
    assert is_recognized("unknown")
    assert is_recognized("error-404")
    assert not is_recognized("error-")
    assert not is_recognized("ONLINE")


@pytest.mark.parametrize(
    ("code", "expected"),
    [(200, "online"), (301, "online"), (405, "online"), (499, "online"),
     (500, "error-500"), (503, "error-503"), (0, "offline"), (199, "offline")],
)
def test_status_from_http_code(code: int, expected: str) -> None:
    assert status_from_http_code(code) == expected
