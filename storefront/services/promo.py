"""Promo code lookup and discount arithmetic."""

from decimal import ROUND_FLOOR, Decimal

from storefront.schemas.checkout import PromoResult

HUNDRED = Decimal("100")


class PromoCodes:
    """Static mapping of upper-case promo codes to discount fractions."""

    def __init__(self, codes: dict[str, Decimal]) -> None:
        self.codes = {code.upper(): Decimal(fraction) for code, fraction in codes.items()}

    def fraction_for(self, code: str | None) -> Decimal:
        """Discount fraction for a code; unknown or empty codes give zero."""
        if not code:
            return Decimal("0")
        return self.codes.get(code.strip().upper(), Decimal("0"))

    def evaluate(self, code: str) -> PromoResult:
        """Look a code up without raising.

        Returns:
            PromoResult: applied=False with 0% for unknown codes.
        """
        fraction = self.fraction_for(code)
        if fraction == 0:
            return PromoResult(applied=False, percent=Decimal("0"), message="Invalid promo code")
        percent = as_percent(fraction)
        return PromoResult(
            applied=True,
            percent=percent,
            message=f"Promo code applied! {percent}% discount",
        )


def as_percent(fraction: Decimal) -> Decimal:
    """Fraction as a percentage without trailing zeros (0.10 -> 10)."""
    return Decimal(f"{(fraction * HUNDRED).normalize():f}")


def discount_amount(subtotal: Decimal, fraction: Decimal) -> Decimal:
    """Discount in whole currency units, floored."""
    return (subtotal * fraction).to_integral_value(rounding=ROUND_FLOOR)


def discounted_total(subtotal: Decimal, fraction: Decimal) -> Decimal:
    """subtotal - floor(subtotal * fraction)."""
    return subtotal - discount_amount(subtotal, fraction)
