# orders/services/allocation.py

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

from catalog.services.pricing import ZERO, money

CENT = Decimal("0.01")


def distribute_amount(amount, weights) -> list[Decimal]:
    """
    Split `amount` across `weights` proportionally, 2dp (largest remainder).

    - every share starts at its exact proportion rounded down to the cent
    - leftover cents go to the largest remainders (ties: later lines first)
    - sum(shares) == amount exactly, no share is negative,
      and no share exceeds its exact proportion by a cent or more
    - all weights zero -> equal split
    """
    amount = money(amount)
    weights = [max(money(w), ZERO) for w in weights]
    if not weights:
        return []

    total_weight = sum(weights, ZERO)
    if total_weight <= ZERO:
        weights = [Decimal("1")] * len(weights)
        total_weight = Decimal(len(weights))

    exact = [amount * w / total_weight for w in weights]
    shares = [x.quantize(CENT, rounding=ROUND_DOWN) for x in exact]

    leftover = int((amount - sum(shares, ZERO)) / CENT)
    by_remainder = sorted(range(len(weights)), key=lambda i: (exact[i] - shares[i], i), reverse=True)
    for i in by_remainder[:leftover]:
        shares[i] += CENT

    return shares
