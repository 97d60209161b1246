"""Tests for shared serialization utilities."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from p2p_lending.models.lending import LoanStatus
from p2p_lending.money import Amount
from p2p_lending.sinks.serialization import dataclass_to_dict, serialize_value, to_dict


@dataclass
class _SampleData:
    name: str
    amount: Amount
    rate: Decimal
    created_at: datetime
    _cache: dict = field(default_factory=dict)


class TestToDict:
    """Tests for to_dict function."""

    def test_dataclass(self) -> None:
        obj = _SampleData(
            name="test",
            amount=Amount.parse("0.5"),
            rate=Decimal("12.5"),
            created_at=datetime(2024, 1, 1),
        )
        result = to_dict(obj)
        assert result == {
            "name": "test",
            "amount": "0.50000000",
            "rate": "12.5",
            "created_at": "2024-01-01T00:00:00",
        }

    def test_dict_values_serialized(self) -> None:
        assert to_dict({"amount": Amount(1), "id": "x"}) == {"amount": "0.00000001", "id": "x"}

    def test_other_type(self) -> None:
        assert to_dict(42) == {"value": "42"}


class TestSerializeValue:
    """Tests for serialize_value function."""

    def test_amount_not_flattened(self) -> None:
        assert serialize_value(Amount.parse("1.06")) == "1.06000000"

    def test_enum(self) -> None:
        assert serialize_value(LoanStatus.REPAID) == "repaid"

    def test_dates(self) -> None:
        assert serialize_value(date(2024, 1, 15)) == "2024-01-15"
        assert serialize_value(datetime(2024, 1, 15, tzinfo=timezone.utc)) == "2024-01-15T00:00:00+00:00"

    def test_nested_structures(self) -> None:
        value = {"history": [{"amount": Amount(5)}, (Decimal("1"), None)]}
        assert serialize_value(value) == {"history": [{"amount": "0.00000005"}, ["1", None]]}

    def test_passthrough(self) -> None:
        assert serialize_value("text") == "text"
        assert serialize_value(3) == 3
        assert serialize_value(None) is None


class TestDataclassToDict:
    """Tests for dataclass_to_dict function."""

    def test_private_fields_skipped(self) -> None:
        obj = _SampleData("x", Amount(0), Decimal("0"), datetime(2024, 1, 1), {"k": 1})
        assert "_cache" not in dataclass_to_dict(obj)
