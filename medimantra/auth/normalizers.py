"""
Normalization of doctor registration fields.

Clients submit several profile fields in more than one shape: a single
string, a comma-separated string, a list of strings, a list of objects or a
single object. Each parser below accepts every shape its field can arrive in
and returns exactly one canonical shape. The parsers are pure: they never
mutate their input and never touch the database or the clock, except that
the qualification year defaults to the current year when none is given.
"""
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

PLACEHOLDER = "To be updated"
FEE_CHANNELS = ("in_person", "video", "phone")

_DIGITS = re.compile(r"\d+")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

StructuredField = Union[None, str, Mapping[str, Any], List[Union[str, Mapping[str, Any]]]]


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(",")]


def _qualification(degree: str, year: int) -> Dict[str, Any]:
    return {"degree": degree.strip(), "institution": PLACEHOLDER, "year": year}


def _hospital(name: str) -> Dict[str, Any]:
    return {"name": name.strip(), "address": PLACEHOLDER, "current": True}


def parse_qualifications(value: StructuredField, year: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Normalize qualifications to a list of {degree, institution, year}.

    - "MBBS, MD" -> two entries with a placeholder institution and ``year``
    - ["MBBS", {...}] -> strings wrapped, objects passed through unchanged
    - {...} -> one-element list

    Args:
        value: Raw qualifications field
        year: Year recorded for wrapped strings (default: current year)
    """
    year = year if year is not None else date.today().year
    if isinstance(value, str):
        return [_qualification(part, year) for part in value.split(",")]
    if isinstance(value, (list, tuple)):
        return [_qualification(item, year) if isinstance(item, str) else item for item in value]
    if isinstance(value, Mapping):
        return [value]
    return []


def parse_string_list(value: Any) -> List[str]:
    """
    Normalize a set-like string field (specialties, languages).

    A string is split on commas and trimmed; a list is passed through; any
    other non-empty value becomes a one-element list of its string form.
    """
    if isinstance(value, str):
        return _split(value)
    if isinstance(value, (list, tuple)):
        return list(value)
    if value:
        return [str(value)]
    return []


def parse_hospital_affiliations(value: StructuredField) -> List[Dict[str, Any]]:
    """
    Normalize hospital affiliations to a list of {name, address, current}.

    Same shapes as qualifications; wrapped strings get a placeholder address
    and are marked as current.
    """
    if isinstance(value, str):
        return [_hospital(part) for part in value.split(",")]
    if isinstance(value, (list, tuple)):
        return [_hospital(item) if isinstance(item, str) else item for item in value]
    if isinstance(value, Mapping):
        return [value]
    return []


def parse_experience(value: Union[None, int, float, str]) -> Union[int, float]:
    """
    Normalize years of experience.

    "15 years" -> 15, 12 -> 12, anything without digits or absent -> 0.
    """
    if isinstance(value, str):
        match = _DIGITS.search(value)
        return int(match.group(0)) if match else 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def _parse_int(value: Union[int, float, str]) -> int:
    """Leading-integer parse; 0 when nothing parses."""
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else 0
    if value != value or value in (float("inf"), float("-inf")):
        return 0
    return int(value)


def parse_consultation_fee(value: Union[None, int, float, str, Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Normalize the consultation fee to {in_person, video, phone}.

    A single value (number or numeric string) is used for every channel.
    For a mapping, video and phone fall back to the in-person value when
    missing, and in-person falls back to 0. So {"in_person": 100} yields
    100 on all three channels.
    """
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        fee = _parse_int(value)
        return {channel: fee for channel in FEE_CHANNELS}
    if isinstance(value, Mapping):
        in_person = value.get("in_person") or value.get("inPerson") or 0
        return {
            "in_person": in_person,
            "video": value.get("video") or in_person or 0,
            "phone": value.get("phone") or in_person or 0,
        }
    return {channel: 0 for channel in FEE_CHANNELS}


def normalize_doctor_profile(fields: Mapping[str, Any], year: Optional[int] = None) -> Dict[str, Any]:
    """
    Apply every field parser to the professional fields of a registration.

    Args:
        fields: Mapping with any of qualifications, specialties, languages,
            hospital_affiliations, experience, consultation_fee
        year: Year used for wrapped qualifications (default: current year)

    Returns:
        Dict with one canonical value per field
    """
    return {
        "qualifications": parse_qualifications(fields.get("qualifications"), year=year),
        "specialties": parse_string_list(fields.get("specialties")),
        "languages": parse_string_list(fields.get("languages")),
        "hospital_affiliations": parse_hospital_affiliations(fields.get("hospital_affiliations")),
        "experience": parse_experience(fields.get("experience")),
        "consultation_fee": parse_consultation_fee(fields.get("consultation_fee")),
    }
