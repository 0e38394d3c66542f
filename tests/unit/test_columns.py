import pytest

from office_bu.sheets.columns import POSITIONAL_INDEX, coerce_id, column_index, transaction_to_row


@pytest.mark.unit
class TestColumns:

    @pytest.mark.parametrize("value,expected", [
        (5, 5),
        (5.0, 5),
        ("1736937000123", 1736937000123),
        (" 7 ", 7),
        (5.5, None),
        ("", None),
        ("abc", None),
        (None, None),
        (True, None),
    ])
    def test_coerce_id(self, value, expected):
        assert coerce_id(value) == expected

    def test_header_lookup_is_case_insensitive(self):
        index = column_index(["Date", "ID", "Type"])

        assert index["date"] == 0
        assert index["id"] == 1
        assert index["type"] == 2
        # unnamed columns keep their fixed slot
        assert index["price"] == POSITIONAL_INDEX["price"]

    def test_missing_header_uses_fixed_order(self):
        assert column_index(None) == POSITIONAL_INDEX
        assert column_index(["a", "b"]) == POSITIONAL_INDEX

    def test_row_layout_follows_index(self):
        data = {"id": 1, "type": "tea", "amount": 20, "note": None, "date": "d", "user": "A", "quantity": 2, "price": 10}

        assert transaction_to_row(data) == [1, "tea", 20, "", "d", "A", 2, 10]
