"""
Compliance rule tests

Tests cover:
- Fee computation and discount stacking
- Rate-band boundaries and category suggestion
- Category selection validation
- Interactive room clamping vs. hard capacity checks at submission
- GSTIN requirement
"""
import pytest

from homestay.core.errors import CapacityExceeded, ValidationFailed
from homestay.schemas.compliance import BandStatus, RateBand
from homestay.schemas.enums import Category, LocationType, OwnerGender
from homestay.services.compliance import (
    DEFAULT_RATE_BANDS,
    RoomRow,
    calculate_fee,
    check_capacity,
    check_gstin,
    clamp_room_row,
    evaluate_band_status,
    highest_room_rate,
    room_rows,
    suggest_category,
    total_beds,
    validate_category_selection,
)


class TestFeeCalculation:
    """Registration fee with itemised discounts"""

    def test_base_fee_without_discounts(self):
        fee = calculate_fee(Category.SILVER, LocationType.GP)

        assert fee.base_fee == 3000
        assert fee.total_before_discounts == 3000
        assert fee.total_discount == 0
        assert fee.final_fee == 3000
        assert fee.savings_percentage == 0

    def test_three_year_validity_and_female_owner_discounts_stack(self):
        fee = calculate_fee(Category.DIAMOND, LocationType.MC, 3, OwnerGender.FEMALE)

        assert fee.total_before_discounts == 54000
        assert fee.validity_discount == 5400
        assert fee.female_owner_discount == 2700
        assert fee.total_discount == 8100
        assert fee.final_fee == 45900
        assert fee.savings_amount == 8100
        assert fee.savings_percentage == 15.0

    def test_special_subdivision_halves_fee(self):
        fee = calculate_fee(Category.GOLD, LocationType.TCP, is_special_subdivision=True)

        assert fee.subdivision_discount == 4000
        assert fee.final_fee == 4000

    def test_all_discounts_combined(self):
        fee = calculate_fee(Category.GOLD, LocationType.GP, 3, OwnerGender.FEMALE, True)

        assert fee.total_before_discounts == 18000
        assert fee.total_discount == 11700
        assert fee.final_fee == 6300
        assert fee.savings_percentage == 65.0

    def test_male_owner_gets_no_gender_discount(self):
        fee = calculate_fee(Category.GOLD, LocationType.MC, owner_gender=OwnerGender.MALE)

        assert fee.female_owner_discount == 0
        assert fee.final_fee == 12000

    def test_invalid_validity_rejected(self):
        with pytest.raises(ValidationFailed):
            calculate_fee(Category.SILVER, LocationType.GP, validity_years=2)


class TestRateBands:
    """Band evaluation is inclusive at both ends"""

    def test_rate_equal_to_upper_bound_is_ok(self):
        assert evaluate_band_status(10000, DEFAULT_RATE_BANDS[Category.GOLD]) == BandStatus.OK

    def test_one_rupee_above_upper_bound_is_above(self):
        assert evaluate_band_status(10001, DEFAULT_RATE_BANDS[Category.GOLD]) == BandStatus.ABOVE

    def test_rate_below_lower_bound(self):
        assert evaluate_band_status(2999, DEFAULT_RATE_BANDS[Category.GOLD]) == BandStatus.BELOW

    def test_missing_or_zero_rate_is_empty(self):
        assert evaluate_band_status(None, DEFAULT_RATE_BANDS[Category.SILVER]) == BandStatus.EMPTY
        assert evaluate_band_status(0, DEFAULT_RATE_BANDS[Category.SILVER]) == BandStatus.EMPTY

    def test_open_ended_band_has_no_ceiling(self):
        assert evaluate_band_status(250000, DEFAULT_RATE_BANDS[Category.DIAMOND]) == BandStatus.OK

    def test_shared_boundary_suggests_lower_category(self):
        assert suggest_category(3000) == Category.SILVER
        assert suggest_category(3000.5) == Category.GOLD

    def test_suggestion_follows_rate(self):
        assert suggest_category(1500) == Category.SILVER
        assert suggest_category(10000) == Category.GOLD
        assert suggest_category(10001) == Category.DIAMOND

    def test_custom_bands(self):
        bands = {
            Category.SILVER: RateBand(min=1, max=1000),
            Category.GOLD: RateBand(min=1001, max=5000),
            Category.DIAMOND: RateBand(min=5001),
        }
        assert suggest_category(2000, bands) == Category.GOLD


class TestCategoryValidation:

    def test_rate_above_band_is_error(self):
        result = validate_category_selection(Category.GOLD, 3, 10001)

        assert result.is_valid is False
        assert result.band_status == BandStatus.ABOVE
        assert result.suggested_category == Category.DIAMOND
        assert "exceeds the Gold band" in result.errors[0]

    def test_rate_below_band_is_only_a_warning(self):
        result = validate_category_selection(Category.DIAMOND, 2, 5000)

        assert result.is_valid is True
        assert result.band_status == BandStatus.BELOW
        assert result.suggested_category == Category.GOLD
        assert len(result.warnings) == 1

    def test_zero_rooms_is_error(self):
        result = validate_category_selection(Category.SILVER, 0, 2000)

        assert result.is_valid is False
        assert "at least one room" in result.errors[0]

    def test_rooms_above_ceiling_is_error(self):
        result = validate_category_selection(Category.SILVER, 7, 2000, max_rooms=6)

        assert result.is_valid is False
        assert "maximum of 6 rooms" in result.errors[0]


class TestRoomClamping:
    """Interactive edits are trimmed to remaining capacity, never rejected"""

    def test_bed_overage_trims_quantity(self):
        # 11 beds today; asking for a 4th double room would make 13
        rows = [
            RoomRow("single", 1, 1, 1500),
            RoomRow("double", 4, 2, 2000),
            RoomRow("suite", 1, 4, 4000),
        ]

        clamped = clamp_room_row(rows, 1, max_rooms=6, max_beds=12, max_beds_per_room=6)

        assert clamped.quantity == 3
        assert clamped.beds_per_room == 2
        rows[1] = clamped
        assert total_beds(rows) == 11

    def test_same_overage_is_rejected_at_submission(self):
        rows = [
            RoomRow("single", 1, 1, 1500),
            RoomRow("double", 4, 2, 2000),
            RoomRow("suite", 1, 4, 4000),
        ]

        with pytest.raises(CapacityExceeded) as exc_info:
            check_capacity(rows, attached_washrooms=6, max_rooms=6, max_beds=12)

        assert "Total beds cannot exceed 12" in exc_info.value.message

    def test_room_overage_trims_quantity(self):
        rows = [
            RoomRow("single", 0, 1),
            RoomRow("double", 4, 1),
            RoomRow("suite", 5, 1),
        ]

        clamped = clamp_room_row(rows, 2, max_rooms=6, max_beds=12, max_beds_per_room=6)

        assert clamped.quantity == 2

    def test_beds_per_room_shrink_when_no_full_room_fits(self):
        rows = [
            RoomRow("single", 0, 1),
            RoomRow("double", 5, 2),
            RoomRow("suite", 1, 4),
        ]

        clamped = clamp_room_row(rows, 2, max_rooms=6, max_beds=12, max_beds_per_room=6)

        assert clamped.quantity == 1
        assert clamped.beds_per_room == 2

    def test_beds_per_room_capped(self):
        rows = [RoomRow("single", 0, 1), RoomRow("double", 0, 2), RoomRow("suite", 1, 9)]

        clamped = clamp_room_row(rows, 2, max_rooms=6, max_beds=12, max_beds_per_room=6)

        assert clamped.beds_per_room == 6

    def test_row_within_capacity_unchanged(self):
        rows = [RoomRow("single", 1, 1), RoomRow("double", 2, 2), RoomRow("suite", 0, 4)]

        assert clamp_room_row(rows, 1, 6, 12, 6) == rows[1]


class TestCapacityCheck:
    """Hard checks applied at submission"""

    def test_no_rooms(self):
        rows = [RoomRow("single", 0, 1), RoomRow("double", 0, 2), RoomRow("suite", 0, 4)]

        with pytest.raises(ValidationFailed, match="at least one room"):
            check_capacity(rows, 0, 6, 12)

    def test_too_many_rooms(self):
        rows = [RoomRow("single", 7, 1, 1000), RoomRow("double", 0, 2), RoomRow("suite", 0, 4)]

        with pytest.raises(CapacityExceeded, match="maximum of 6 rooms"):
            check_capacity(rows, 7, 6, 12)

    def test_fewer_washrooms_than_rooms(self):
        rows = [RoomRow("single", 0, 1), RoomRow("double", 3, 2, 2000), RoomRow("suite", 0, 4)]

        with pytest.raises(ValidationFailed, match="own washroom"):
            check_capacity(rows, 2, 6, 12)

    def test_missing_rate_for_configured_room_type(self):
        rows = [RoomRow("single", 2, 1, 0), RoomRow("double", 0, 2), RoomRow("suite", 0, 4)]

        with pytest.raises(ValidationFailed, match="Single bed room rate is required"):
            check_capacity(rows, 2, 6, 12)

    def test_rate_below_minimum(self):
        rows = [RoomRow("single", 0, 1), RoomRow("double", 1, 2, 50), RoomRow("suite", 0, 4)]

        with pytest.raises(ValidationFailed, match="at least ₹100"):
            check_capacity(rows, 1, 6, 12, min_rate=100)

    def test_capacity_exceeded_is_a_validation_failure(self):
        assert issubclass(CapacityExceeded, ValidationFailed)


class TestRoomHelpers:

    def test_room_rows_defaults_beds_per_room(self):
        class Source:
            single_bed_rooms = 1
            single_bed_beds = None
            single_bed_room_rate = 1000
            double_bed_rooms = 0
            double_bed_beds = None
            double_bed_room_rate = None
            family_suites = 1
            family_suite_beds = None
            family_suite_rate = 5000

        rows = room_rows(Source())

        assert [row.beds_per_room for row in rows] == [1, 2, 4]
        assert total_beds(rows) == 5
        assert highest_room_rate(rows) == 5000

    def test_highest_rate_ignores_empty_room_types(self):
        rows = [RoomRow("single", 0, 1, 9000), RoomRow("double", 1, 2, 2000), RoomRow("suite", 0, 4)]

        assert highest_room_rate(rows) == 2000


class TestGstin:

    def test_required_for_gold(self):
        with pytest.raises(ValidationFailed, match="GSTIN is mandatory for Gold"):
            check_gstin(Category.GOLD, None)

    def test_required_for_diamond(self):
        with pytest.raises(ValidationFailed):
            check_gstin(Category.DIAMOND, "  ")

    def test_not_required_for_silver(self):
        check_gstin(Category.SILVER, None)

    def test_present_gstin_accepted(self):
        check_gstin(Category.GOLD, "02AAAAA0000A1Z5")
