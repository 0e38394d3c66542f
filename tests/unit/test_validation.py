import pytest
from datetime import datetime, timezone
from decimal import Decimal

from office_bu.domain.enums import TransactionType
from office_bu.domain.validation import ValidationError, build_draft, parse_type

@pytest.mark.unit
class TestBuildDraft:

    def test_valid_purchase(self):
        draft = build_draft("Tea", price="10", user=" Alice ", quantity=2, note=" chai ")

        assert draft.type is TransactionType.TEA
        assert draft.quantity == Decimal("2")
        assert draft.price == Decimal("10")
        assert draft.user == "Alice"
        assert draft.note == "chai"
        assert draft.date is None

    def test_payment_quantity_is_always_one(self):
        draft = build_draft("payment", price=150, user="Bob", quantity=7)

        assert draft.quantity == Decimal("1")
        assert draft.amount == Decimal("150")

    def test_backdated_date_is_parsed(self):
        draft = build_draft("coffee", price=30, user="Bob", quantity=1, date="2024-12-01")

        assert draft.date == datetime(2024, 12, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("kwargs,message", [
        (dict(user=""), "user is required"),
        (dict(user="   "), "user is required"),
        (dict(user=None), "user is required"),
        (dict(quantity=0), "quantity must be greater than zero"),
        (dict(quantity=-1), "quantity must be greater than zero"),
        (dict(quantity=None), "quantity is required"),
        (dict(price=0), "price must be greater than zero"),
        (dict(price="ten"), "price must be a number"),
        (dict(date="yesterday"), "date must be ISO-8601"),
    ])
    def test_rejects_invalid_input(self, kwargs, message):
        values = dict(type="snacks", price=10, user="Alice", quantity=1)
        values.update(kwargs)

        with pytest.raises(ValidationError, match=message):
            build_draft(**values)

    def test_unknown_type_lists_available_types(self):
        with pytest.raises(ValidationError, match="tea, coffee, snacks, payment"):
            parse_type("juice")

    def test_backdated_date_is_truncated_to_milliseconds(self):
        draft = build_draft("tea", price=10, user="Alice", quantity=1, date="2025-01-15T09:00:00.123456+00:00")

        assert draft.date == datetime(2025, 1, 15, 9, 0, 0, 123000, tzinfo=timezone.utc)
