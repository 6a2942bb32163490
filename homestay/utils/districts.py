import re
from typing import Optional

# "Hamirpur (serving Una)" -> {"hamirpur", "una"}
_SERVING_PATTERN = re.compile(r"^(?P<base>[^(]+?)\s*\(\s*serving\s+(?P<served>[^)]+)\)\s*$", re.IGNORECASE)


def normalize_district(value: Optional[str]) -> set[str]:
    """Return the set of lower-cased district names a label covers"""
    if not value:
        return set()
    label = value.strip()
    match = _SERVING_PATTERN.match(label)
    if not match:
        return {label.lower()}
    names = {match.group("base").strip().lower()}
    for served in re.split(r"\s*(?:,|&|\band\b)\s*", match.group("served"), flags=re.IGNORECASE):
        if served.strip():
            names.add(served.strip().lower())
    return names


def districts_match(staff_district: Optional[str], application_district: Optional[str]) -> bool:
    """
    Check whether a staff member's district covers an application's district

    Case-insensitive. A combined staff label such as "Hamirpur (serving Una)"
    covers both named districts.
    """
    staff = normalize_district(staff_district)
    target = normalize_district(application_district)
    if not staff or not target:
        return False
    return bool(staff & target)


def district_code(district: Optional[str]) -> str:
    """Three-letter routing code used in application numbers"""
    base = (district or "").split("(")[0]
    letters = re.sub(r"[^A-Za-z]", "", base)
    return (letters[:3] or "GEN").upper()
