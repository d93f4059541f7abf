"""Read-only references to records owned by other parts of the shop."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(slots=True)
class Customer:
    id: int
    email: str
    full_name: Optional[str]


@dataclass(slots=True)
class Product:
    id: int
    name: str
    base_price: Decimal
    image_url: Optional[str]
