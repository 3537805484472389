"""
Phone number normalization to E.164.

Two policies share the Normalizer interface:

- StrictE164Normalizer (default) only accepts numbers that already carry an
  international prefix ("+" or "00"). National-format input is rejected even
  when a default country is known.
- CountryInferringNormalizer also accepts national-format input and builds
  the E.164 form from the default country's calling code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Protocol

from .countries import REGISTRY, CountryRegistry
from .errors import ConfigurationError

_SEPARATORS_RE = re.compile(r"[\s\-().]")
_NON_DIGIT_RE = re.compile(r"[^0-9]")
_INTERNATIONAL_DIGITS_RE = re.compile(r"[0-9]{8,15}")


class NormalizeErrorCode(str, Enum):
    EMPTY_INPUT = "EmptyInput"
    INVALID_E164_FORMAT = "InvalidE164Format"
    INVALID_INTERNATIONAL_FORMAT = "InvalidInternationalFormat"
    CANNOT_INFER_COUNTRY = "CannotInferCountry"
    UNKNOWN_COUNTRY = "UnknownCountry"
    INVALID_NUMBER = "InvalidNumber"


@dataclass(frozen=True)
class Ok:
    value: str
    ok: Literal[True] = True


@dataclass(frozen=True)
class Err:
    error: str
    code: NormalizeErrorCode
    ok: Literal[False] = False


NormalizeResult = Ok | Err


@dataclass(frozen=True)
class ParsedPhoneNumber:
    country_calling_code: str
    national_number: str
    is_valid: bool
    e164: str | None = None


class Normalizer(Protocol):
    def normalize(self, raw: str | None, default_country: str | None = None) -> NormalizeResult:
        ...


class StrictE164Normalizer:
    """Accept only "+<digits>" or "00<digits>" input (8 to 15 digits)."""

    def normalize(self, raw: str | None, default_country: str | None = None) -> NormalizeResult:
        # default_country is accepted for interface compatibility and ignored:
        # national formats are ambiguous without a per-country grammar.
        trimmed = (raw or "").strip()
        if not trimmed:
            return Err("Phone number is empty", NormalizeErrorCode.EMPTY_INPUT)

        cleaned = _SEPARATORS_RE.sub("", trimmed)

        if cleaned.startswith("+"):
            digits = cleaned[1:]
            if not _INTERNATIONAL_DIGITS_RE.fullmatch(digits):
                return Err(
                    "Invalid E.164 phone number format",
                    NormalizeErrorCode.INVALID_E164_FORMAT,
                )
            return Ok(f"+{digits}")

        if cleaned.startswith("00"):
            digits = cleaned[2:]
            if not _INTERNATIONAL_DIGITS_RE.fullmatch(digits):
                return Err(
                    "Invalid international number format after 00 prefix",
                    NormalizeErrorCode.INVALID_INTERNATIONAL_FORMAT,
                )
            return Ok(f"+{digits}")

        return Err(
            "Local or national format provided; cannot infer country to build E.164",
            NormalizeErrorCode.CANNOT_INFER_COUNTRY,
        )


def _normalize_digits(raw: str) -> str:
    """Digits only, keeping a leading "+" when the input had one."""
    if not raw:
        return ""
    has_plus = raw.strip().startswith("+")
    digits = _NON_DIGIT_RE.sub("", raw)
    return f"+{digits}" if has_plus else digits


def _parsed(country_code: str, national_number: str) -> ParsedPhoneNumber:
    # E.164 caps the full number at 15 digits; anything under 7 is not dialable.
    total_digits = len(country_code) + len(national_number)
    is_valid = 7 <= total_digits <= 15 and len(national_number) >= 4
    return ParsedPhoneNumber(
        country_calling_code=country_code,
        national_number=national_number,
        is_valid=is_valid,
        e164=f"+{country_code}{national_number}" if is_valid else None,
    )


def parse_phone_number(
    raw: str | None,
    default_country: str | None = None,
    registry: CountryRegistry = REGISTRY,
) -> ParsedPhoneNumber:
    """
    Split a phone number into calling code and national number.

    International input ("+...") is matched against the known calling codes,
    longest prefix first (3, 2, then 1 digits), requiring at least 4 digits
    to remain for the national number. When nothing matches, the first
    min(3, len - 4) digits are taken as the calling code.

    National input needs default_country; a single leading trunk "0" is
    dropped ("0437 536 808" with AU gives +61437536808).
    """
    normalized = _normalize_digits(raw or "")
    if not normalized:
        return ParsedPhoneNumber("", "", False)

    country_code = ""
    national_number = ""

    if normalized.startswith("+"):
        digits_only = normalized[1:]
        known_codes = registry.calling_codes()

        # NOTE: a code that is a prefix of a longer one (e.g. "1" and "1xx")
        # can be split at the wrong boundary; there is no per-country
        # national-number grammar to disambiguate.
        for i in (3, 2, 1):
            potential_code = digits_only[:i]
            potential_national = digits_only[i:]
            if potential_code in known_codes and len(potential_national) >= 4:
                country_code = potential_code
                national_number = potential_national
                break

        if not country_code:
            if len(digits_only) > 3:
                country_code = digits_only[: min(3, len(digits_only) - 4)]
                national_number = digits_only[len(country_code):]
            else:
                national_number = digits_only
    else:
        calling_code = registry.calling_code_of(default_country) if default_country else None
        if not calling_code:
            return ParsedPhoneNumber("", normalized, False)

        country_code = calling_code
        national_number = normalized[1:] if normalized.startswith("0") else normalized

    return _parsed(country_code, national_number)


class CountryInferringNormalizer:
    """Looser policy: national numbers are completed with the default country's code."""

    def __init__(self, registry: CountryRegistry = REGISTRY) -> None:
        self.registry = registry

    def normalize(self, raw: str | None, default_country: str | None = None) -> NormalizeResult:
        trimmed = (raw or "").strip()
        if not trimmed:
            return Err("Phone number is empty", NormalizeErrorCode.EMPTY_INPUT)

        if not trimmed.startswith("+"):
            if not default_country:
                return Err(
                    "Local or national format provided; a default country is required",
                    NormalizeErrorCode.CANNOT_INFER_COUNTRY,
                )
            if not self.registry.is_known(default_country):
                return Err(
                    f"Unknown country code: {default_country}",
                    NormalizeErrorCode.UNKNOWN_COUNTRY,
                )

        parsed = parse_phone_number(trimmed, default_country, registry=self.registry)
        if not parsed.is_valid or parsed.e164 is None:
            return Err("Invalid phone number", NormalizeErrorCode.INVALID_NUMBER)
        return Ok(parsed.e164)


def format_to_e164(raw: str | None, default_country: str | None = None) -> str | None:
    return parse_phone_number(raw, default_country).e164


def is_valid_phone_number(raw: str | None) -> bool:
    """
    International input must parse as valid; national input only needs a
    plausible length (7-15 digits) since no country is known.
    """
    normalized = _normalize_digits(raw or "")
    if not normalized:
        return False
    if normalized.startswith("+"):
        return parse_phone_number(raw).is_valid
    return 7 <= len(normalized) <= 15


def format_international(raw: str) -> str:
    """Display form "+61 437536808"; unparseable input is returned unchanged."""
    if not _normalize_digits(raw):
        return raw
    parsed = parse_phone_number(raw)
    if not parsed.is_valid or not parsed.e164:
        return raw
    return f"+{parsed.country_calling_code} {parsed.national_number}"


_STRICT = StrictE164Normalizer()
_INFERRING = CountryInferringNormalizer()


def get_normalizer(policy: str = "strict") -> Normalizer:
    if policy == "strict":
        return _STRICT
    if policy == "infer":
        return _INFERRING
    raise ConfigurationError(f"Unknown phone normalizer policy: {policy!r}")


def normalize_to_e164(raw: str | None, default_country: str | None = None) -> NormalizeResult:
    """Normalize with the default (strict) policy."""
    return _STRICT.normalize(raw, default_country)
