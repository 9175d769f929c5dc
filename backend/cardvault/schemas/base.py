from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")

# matches the Numeric(12, 2) money columns
MONEY_DIGITS = 12
MONEY_PLACES = 2
MONEY_MAX = Decimal("9999999999.99")


def to_money(value) -> Decimal:
    """Exact two-place decimal; never goes through float."""
    try:
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        if not value.is_finite():
            raise ValueError(f"{value} is not a valid amount")
        money = value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"{value} is not a valid amount")
    if abs(money) > MONEY_MAX:
        raise ValueError(f"{money} is out of range (max {MONEY_MAX})")
    return money


# inputs with more than two places are rejected, never rounded
Money = Annotated[
    Decimal,
    Field(max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES),
    AfterValidator(to_money),
]


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ReadModel(ApiModel):
    model_config = ConfigDict(frozen=True)

    # SQLite hands back naive datetimes; everything we store is UTC
    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, value):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
