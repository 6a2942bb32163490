"""
Compliance rules for homestay registrations

Pure functions over explicit inputs: fee computation, category/tariff
validation and room/bed capacity checks. Nothing here touches the database.
"""
import math
from typing import Any, Mapping, NamedTuple, Optional

from ..core.errors import CapacityExceeded, ValidationFailed
from ..schemas.compliance import BandStatus, CategoryValidation, FeeBreakdown, RateBand
from ..schemas.enums import CATEGORY_ORDER, Category, LocationType, OwnerGender

# Annual base fee (INR) by category and location type
BASE_FEES: dict[Category, dict[LocationType, float]] = {
    Category.DIAMOND: {LocationType.MC: 18000, LocationType.TCP: 12000, LocationType.GP: 10000},
    Category.GOLD: {LocationType.MC: 12000, LocationType.TCP: 8000, LocationType.GP: 6000},
    Category.SILVER: {LocationType.MC: 8000, LocationType.TCP: 5000, LocationType.GP: 3000},
}

VALIDITY_DISCOUNT_PERCENT = 10      # 3-year lump sum
FEMALE_OWNER_DISCOUNT_PERCENT = 5
SPECIAL_SUBDIVISION_DISCOUNT_PERCENT = 50  # Pangi

DEFAULT_RATE_BANDS: dict[Category, RateBand] = {
    Category.SILVER: RateBand(min=1, max=3000),
    Category.GOLD: RateBand(min=3000, max=10000),
    Category.DIAMOND: RateBand(min=10001, max=None),
}

GSTIN_REQUIRED_CATEGORIES = frozenset({Category.GOLD, Category.DIAMOND})


class RoomTypeFields(NamedTuple):
    """Application columns backing one room type"""

    count: str
    beds: str
    rate: str
    default_beds: int
    label: str


ROOM_TYPES: dict[str, RoomTypeFields] = {
    "single": RoomTypeFields("single_bed_rooms", "single_bed_beds", "single_bed_room_rate", 1, "Single bed room"),
    "double": RoomTypeFields("double_bed_rooms", "double_bed_beds", "double_bed_room_rate", 2, "Double bed room"),
    "suite": RoomTypeFields("family_suites", "family_suite_beds", "family_suite_rate", 4, "Family suite"),
}


class RoomRow(NamedTuple):
    room_type: str
    quantity: int
    beds_per_room: int
    rate: Optional[float] = None


def _money(value: float) -> float:
    return round(value, 2)


def calculate_fee(
    category: Category,
    location_type: LocationType,
    validity_years: int = 1,
    owner_gender: Optional[OwnerGender] = None,
    is_special_subdivision: bool = False,
) -> FeeBreakdown:
    """
    Compute the registration fee with itemised discounts

    Discounts are percentages of the pre-discount total and are summed:
    3-year validity 10%, female owner 5%, special sub-division 50%.
    The final fee never drops below zero.
    """
    if validity_years not in (1, 3):
        raise ValidationFailed("Certificate validity must be 1 or 3 years")

    base_fee = BASE_FEES[Category(category)][LocationType(location_type)]
    total_before_discounts = base_fee * validity_years

    validity_discount = (
        total_before_discounts * VALIDITY_DISCOUNT_PERCENT / 100 if validity_years == 3 else 0.0
    )
    female_owner_discount = (
        total_before_discounts * FEMALE_OWNER_DISCOUNT_PERCENT / 100
        if owner_gender == OwnerGender.FEMALE
        else 0.0
    )
    subdivision_discount = (
        total_before_discounts * SPECIAL_SUBDIVISION_DISCOUNT_PERCENT / 100
        if is_special_subdivision
        else 0.0
    )

    total_discount = validity_discount + female_owner_discount + subdivision_discount
    final_fee = max(0.0, total_before_discounts - total_discount)
    savings_percentage = (
        round(total_discount / total_before_discounts * 100, 1) if total_before_discounts else 0.0
    )

    return FeeBreakdown(
        base_fee=_money(base_fee),
        total_before_discounts=_money(total_before_discounts),
        validity_discount=_money(validity_discount),
        female_owner_discount=_money(female_owner_discount),
        subdivision_discount=_money(subdivision_discount),
        total_discount=_money(total_discount),
        final_fee=_money(final_fee),
        savings_amount=_money(total_discount),
        savings_percentage=savings_percentage,
    )


def evaluate_band_status(rate: Optional[float], band: RateBand) -> BandStatus:
    """Inclusive lower bound; inclusive upper bound when present"""
    if rate is None or math.isnan(rate) or rate <= 0:
        return BandStatus.EMPTY
    if rate < band.min:
        return BandStatus.BELOW
    if band.max is not None and rate > band.max:
        return BandStatus.ABOVE
    return BandStatus.OK


def suggest_category(
    rate: Optional[float],
    bands: Optional[Mapping[Category, RateBand]] = None,
) -> Optional[Category]:
    """Lowest category whose band contains the rate"""
    bands = bands or DEFAULT_RATE_BANDS
    for category in CATEGORY_ORDER:
        band = bands.get(category)
        if band is not None and evaluate_band_status(rate, band) == BandStatus.OK:
            return category
    return None


def validate_category_selection(
    category: Category,
    total_rooms: int,
    highest_rate: Optional[float],
    bands: Optional[Mapping[Category, RateBand]] = None,
    max_rooms: int = 6,
) -> CategoryValidation:
    bands = bands or DEFAULT_RATE_BANDS
    category = Category(category)
    errors: list[str] = []
    warnings: list[str] = []

    if total_rooms <= 0:
        errors.append("Please configure at least one room before selecting a category.")
    elif total_rooms > max_rooms:
        errors.append(f"HP Homestay Rules 2025 permit a maximum of {max_rooms} rooms.")

    band_status = evaluate_band_status(highest_rate, bands[category])
    suggested = suggest_category(highest_rate, bands)

    if band_status == BandStatus.ABOVE:
        errors.append(
            f"The highest nightly tariff (₹{highest_rate:,.0f}) exceeds the "
            f"{category.value.title()} band. Update the rates or choose a higher category."
        )
    elif band_status == BandStatus.BELOW:
        warnings.append(
            f"The highest nightly tariff (₹{highest_rate:,.0f}) is below the "
            f"{category.value.title()} band; "
            f"{(suggested or category).value.title()} matches these rates."
        )

    return CategoryValidation(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        suggested_category=suggested,
        band_status=band_status,
    )


def room_rows(source: Any) -> list[RoomRow]:
    """Read the three room-type rows off an application-like object"""
    rows = []
    for room_type, fields in ROOM_TYPES.items():
        quantity = int(getattr(source, fields.count, 0) or 0)
        beds = getattr(source, fields.beds, None)
        rows.append(
            RoomRow(
                room_type=room_type,
                quantity=quantity,
                beds_per_room=int(beds) if beds else fields.default_beds,
                rate=getattr(source, fields.rate, None),
            )
        )
    return rows


def total_beds(rows: list[RoomRow]) -> int:
    return sum(max(0, row.quantity) * row.beds_per_room for row in rows)


def highest_room_rate(rows: list[RoomRow]) -> float:
    rates = [row.rate or 0 for row in rows if row.quantity > 0]
    return float(max(rates, default=0))


def clamp_room_row(
    rows: list[RoomRow],
    index: int,
    max_rooms: int,
    max_beds: int,
    max_beds_per_room: int,
) -> RoomRow:
    """
    Clamp an edited room row to the capacity left by the other rows

    The quantity is reduced first; beds-per-room only shrinks when not even
    one room of the requested size fits. Never raises.
    """
    others = [row for i, row in enumerate(rows) if i != index]
    rooms_available = max(0, max_rooms - sum(max(0, row.quantity) for row in others))
    beds_available = max(0, max_beds - total_beds(others))

    row = rows[index]
    beds_per_room = max(1, min(row.beds_per_room, max_beds_per_room))
    quantity = max(0, min(row.quantity, rooms_available))

    if quantity * beds_per_room > beds_available:
        fit = beds_available // beds_per_room
        if fit > 0:
            quantity = fit
        else:
            quantity = min(quantity, beds_available)
            if quantity > 0:
                beds_per_room = max(1, beds_available // quantity)

    return row._replace(quantity=quantity, beds_per_room=beds_per_room)


def check_capacity(
    rows: list[RoomRow],
    attached_washrooms: int,
    max_rooms: int,
    max_beds: int,
    min_rate: Optional[float] = None,
) -> None:
    """
    Hard capacity check applied at submission and resubmission

    Raises CapacityExceeded for ceiling breaches and ValidationFailed for
    missing washrooms or missing/too-low per-room-type rates.
    """
    rooms = sum(max(0, row.quantity) for row in rows)
    if rooms <= 0:
        raise ValidationFailed("Please configure at least one room before submitting the application.")
    if rooms > max_rooms:
        raise CapacityExceeded(f"HP Homestay Rules 2025 permit a maximum of {max_rooms} rooms.")
    if total_beds(rows) > max_beds:
        raise CapacityExceeded(
            f"Total beds cannot exceed {max_beds} across all room types. Please adjust the bed counts."
        )
    if (attached_washrooms or 0) < rooms:
        raise ValidationFailed(
            "Every room must have its own washroom. Increase attached washrooms to at least the total number of rooms."
        )

    for row in rows:
        if row.quantity <= 0:
            continue
        label = ROOM_TYPES[row.room_type].label
        if not row.rate or row.rate <= 0:
            raise ValidationFailed(
                f"Per-room-type rates are mandatory. {label} rate is required "
                "(HP Homestay Rules 2025 - ANNEXURE-I Form-A Certificate Requirement)"
            )
        if min_rate is not None and row.rate < min_rate:
            raise ValidationFailed(f"{label} rate must be at least ₹{min_rate:,.0f} per night.")


def check_gstin(category: Optional[Category], gstin: Optional[str]) -> None:
    if category and Category(category) in GSTIN_REQUIRED_CATEGORIES and not (gstin or "").strip():
        raise ValidationFailed(
            f"GSTIN is mandatory for {Category(category).value.title()} category homestays."
        )
