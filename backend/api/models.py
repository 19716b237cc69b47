"""
Pydantic request models for the API.
"""
from pydantic import BaseModel
from typing import Optional, Union


# ============== Quotation ==============

class BatchAddRequest(BaseModel):
    text: str


class EntryUpdateRequest(BaseModel):
    """Invalid values are coerced by the session (quantity -> 1, price -> 0)."""
    quantity: Optional[Union[int, float, str]] = None
    price_override: Optional[Union[int, float, str]] = None


class DiscountRequest(BaseModel):
    percent: float


class PriceOptionRequest(BaseModel):
    price_option: str


class CustomerRequest(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    date: Optional[str] = None
    vessel: Optional[str] = None
    project: Optional[str] = None
