import re
from typing import Literal, Optional

from pydantic import Field, field_validator

from cardvault.schemas.base import ApiModel, Money
from cardvault.schemas.transaction import Category

CURRENCY_NOISE = re.compile(r"(?i)(inr|rs\.?|₹|,|\s)")


class ExtractedTransaction(ApiModel):
    """What the text extractor claims an SMS says. Untrusted input."""

    merchant_name: str = Field(..., min_length=1)
    amount: Money = Field(..., gt=0)
    category: Category = Category.OTHER
    last_four_digits: Optional[str] = None
    description: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def strip_currency(cls, value):
        if isinstance(value, str):
            return CURRENCY_NOISE.sub("", value)
        return value

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, value):
        for category in Category:
            if isinstance(value, str) and value.strip().lower() == category.value.lower():
                return category
        return Category.OTHER

    @field_validator("last_four_digits", mode="before")
    @classmethod
    def keep_last_four(cls, value):
        if value is None:
            return None
        digits = re.sub(r"\D", "", str(value))
        return digits[-4:] if len(digits) >= 4 else None


class EmailChange(ApiModel):
    field: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    impact: Optional[str] = None


class EmailAnalysis(ApiModel):
    type: Literal["statement", "offer", "bill", "other"]
    summary: str
    changes: Optional[list[EmailChange]] = None
    bill_amount: Optional[str] = None
    due_date: Optional[str] = None


class IncomingEmail(ApiModel):
    id: str
    subject: str = ""
    body: str = Field("", max_length=20000)
    sender: str = Field("", alias="from")
    date: Optional[str] = None


class EmailBatch(ApiModel):
    emails: list[IncomingEmail]


class EmailDigestResponse(ApiModel):
    success: bool
    count: int
    total: int
