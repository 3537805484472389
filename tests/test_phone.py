from __future__ import annotations

import pytest

from mm_sms.errors import ConfigurationError
from mm_sms.phone import (
    CountryInferringNormalizer,
    NormalizeErrorCode,
    StrictE164Normalizer,
    format_international,
    format_to_e164,
    get_normalizer,
    is_valid_phone_number,
    normalize_to_e164,
    parse_phone_number,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+61437536808", "+61437536808"),
        ("+61 437 536 808", "+61437536808"),
        ("0061437536808", "+61437536808"),
        ("(+1) 415-555-2671", "+14155552671"),
        ("+44.20.7946.0958", "+442079460958"),
        ("+12345678", "+12345678"),
        ("+123456789012345", "+123456789012345"),
    ],
)
def test_strict_accepts_international_forms(raw: str, expected: str) -> None:
    result = normalize_to_e164(raw)
    assert result.ok
    assert result.value == expected


@pytest.mark.parametrize(
    "raw, code",
    [
        ("", NormalizeErrorCode.EMPTY_INPUT),
        ("   ", NormalizeErrorCode.EMPTY_INPUT),
        (None, NormalizeErrorCode.EMPTY_INPUT),
        ("+123", NormalizeErrorCode.INVALID_E164_FORMAT),
        ("+1234567", NormalizeErrorCode.INVALID_E164_FORMAT),
        ("+1234567890123456", NormalizeErrorCode.INVALID_E164_FORMAT),
        ("+61abc437536", NormalizeErrorCode.INVALID_E164_FORMAT),
        ("00123", NormalizeErrorCode.INVALID_INTERNATIONAL_FORMAT),
        ("001234567", NormalizeErrorCode.INVALID_INTERNATIONAL_FORMAT),
        ("001234567890123456", NormalizeErrorCode.INVALID_INTERNATIONAL_FORMAT),
        ("0437 536 808", NormalizeErrorCode.CANNOT_INFER_COUNTRY),
        ("4155552671", NormalizeErrorCode.CANNOT_INFER_COUNTRY),
    ],
)
def test_strict_rejections(raw: str | None, code: NormalizeErrorCode) -> None:
    result = normalize_to_e164(raw)
    assert not result.ok
    assert result.code is code


def test_strict_ignores_default_country() -> None:
    result = StrictE164Normalizer().normalize("0437 536 808", "AU")
    assert not result.ok
    assert result.code is NormalizeErrorCode.CANNOT_INFER_COUNTRY
    assert result.error == "Local or national format provided; cannot infer country to build E.164"


def test_strict_is_idempotent() -> None:
    for raw in ["+61 437 536 808", "0061437536808", "(+1) 415-555-2671"]:
        first = normalize_to_e164(raw)
        assert first.ok
        second = normalize_to_e164(first.value)
        assert second.ok and second.value == first.value


def test_inferring_national_numbers() -> None:
    normalizer = CountryInferringNormalizer()
    au = normalizer.normalize("0437 536 808", "AU")
    us = normalizer.normalize("4155552671", "US")
    assert au.ok and au.value == "+61437536808"
    assert us.ok and us.value == "+14155552671"


def test_inferring_international_needs_no_country() -> None:
    result = CountryInferringNormalizer().normalize("+61 437 536 808")
    assert result.ok and result.value == "+61437536808"


def test_inferring_rejections() -> None:
    normalizer = CountryInferringNormalizer()
    assert normalizer.normalize("").code is NormalizeErrorCode.EMPTY_INPUT
    assert normalizer.normalize("0437536808").code is NormalizeErrorCode.CANNOT_INFER_COUNTRY
    assert normalizer.normalize("0437536808", "ZZ").code is NormalizeErrorCode.UNKNOWN_COUNTRY
    assert normalizer.normalize("12", "AU").code is NormalizeErrorCode.INVALID_NUMBER


def test_parse_matches_known_calling_codes() -> None:
    parsed = parse_phone_number("+61437536808")
    assert parsed.country_calling_code == "61"
    assert parsed.national_number == "437536808"
    assert parsed.is_valid
    assert parsed.e164 == "+61437536808"

    fiji = parse_phone_number("+6791234567")
    assert fiji.country_calling_code == "679"


def test_parse_falls_back_to_leading_digits() -> None:
    parsed = parse_phone_number("+999123456")
    assert parsed.country_calling_code == "999"
    assert parsed.national_number == "123456"
    assert parsed.e164 == "+999123456"


def test_parse_national_without_country_is_invalid() -> None:
    parsed = parse_phone_number("0437536808")
    assert not parsed.is_valid
    assert parsed.e164 is None


def test_format_helpers() -> None:
    assert format_to_e164("0437536808", "AU") == "+61437536808"
    assert format_to_e164("+12") is None
    assert format_international("+61437536808") == "+61 437536808"
    assert format_international("+12") == "+12"
    assert format_international("abc") == "abc"


def test_is_valid_phone_number() -> None:
    assert is_valid_phone_number("+61437536808")
    assert is_valid_phone_number("0437536808")
    assert not is_valid_phone_number("123")
    assert not is_valid_phone_number("")


def test_get_normalizer() -> None:
    assert isinstance(get_normalizer("strict"), StrictE164Normalizer)
    assert isinstance(get_normalizer("infer"), CountryInferringNormalizer)
    with pytest.raises(ConfigurationError):
        get_normalizer("loose")


def test_international_prefix_scenarios() -> None:
    result = normalize_to_e164("0014155552671")
    assert result.ok and result.value == "+14155552671"

    national = normalize_to_e164("415-555-2671", "US")
    assert not national.ok and national.code is NormalizeErrorCode.CANNOT_INFER_COUNTRY
