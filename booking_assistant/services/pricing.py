"""Reservation pricing: course price + material fee − discount."""

from __future__ import annotations

import random

from booking_assistant.config import DISCOUNT_RATE, MATERIAL_FEE_MAX, MATERIAL_FEE_MIN
from booking_assistant.models import Pricing


class PricingPolicy:
    def __init__(
        self,
        *,
        material_fee_min: int = MATERIAL_FEE_MIN,
        material_fee_max: int = MATERIAL_FEE_MAX,
        discount_rate: float = DISCOUNT_RATE,
        rng: random.Random | None = None,
    ) -> None:
        if material_fee_min > material_fee_max:
            raise ValueError("material_fee_min must not exceed material_fee_max")
        self._fee_min = material_fee_min
        self._fee_max = material_fee_max
        self._discount_rate = max(0.0, min(discount_rate, 1.0))
        self._rng = rng or random.Random()

    def quote(self, base_price: float) -> Pricing:
        base = max(0, round(base_price))
        # Rounded to the nearest 10 like a real price list
        fee = round(self._rng.randint(self._fee_min, self._fee_max), -1)
        fee = min(max(fee, self._fee_min), self._fee_max)
        discount = round(base * self._discount_rate)
        return Pricing(
            base_price=base,
            material_fee=fee,
            discount_applied=discount > 0,
            discount_amount=discount,
        )
