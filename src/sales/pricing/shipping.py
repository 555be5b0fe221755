"""Weight-tiered shipping fees.

A shipping configuration is an ordered list of weight bands, each mapped to
a flat fee, plus a free-shipping threshold and an express surcharge. The
last band is open-ended (``max_weight == -1``) so every non-negative weight
is priced.

Bands are expressed in whole grams: ``[0, 500]`` followed by ``[501, 1000]``
is contiguous, and a fractional weight such as 500.4g falls into the second
band.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from protean.exceptions import ValidationError

from sales.exceptions import ConfigurationError

UNBOUNDED = -1


@dataclass(frozen=True)
class ShippingRate:
    """A weight band (grams, inclusive) and its flat fee."""

    min_weight: float
    max_weight: float
    fee: float

    @property
    def is_unbounded(self) -> bool:
        return self.max_weight == UNBOUNDED

    def covers(self, weight: float) -> bool:
        return self.min_weight <= weight and (self.is_unbounded or weight <= self.max_weight)

    def to_dict(self) -> dict:
        return {"minWeight": self.min_weight, "maxWeight": self.max_weight, "fee": self.fee}

    @classmethod
    def from_dict(cls, data: dict) -> "ShippingRate":
        try:
            return cls(
                min_weight=data["minWeight"],
                max_weight=data["maxWeight"],
                fee=data["fee"],
            )
        except KeyError as exc:
            raise ValidationError({"rates": [f"Shipping rate is missing {exc.args[0]}"]}) from exc


@dataclass(frozen=True)
class ShippingConfig:
    rates: tuple[ShippingRate, ...]
    free_shipping_threshold: float
    express_surcharge: float = 0.0

    def to_dict(self) -> dict:
        return {
            "rates": [rate.to_dict() for rate in self.rates],
            "freeShippingThreshold": self.free_shipping_threshold,
            "expressShippingSurcharge": self.express_surcharge,
        }


DEFAULT_RATES = (
    ShippingRate(min_weight=0, max_weight=500, fee=500),
    ShippingRate(min_weight=501, max_weight=1000, fee=800),
    ShippingRate(min_weight=1001, max_weight=2000, fee=1200),
    ShippingRate(min_weight=2001, max_weight=5000, fee=2000),
    ShippingRate(min_weight=5001, max_weight=UNBOUNDED, fee=3000),
)

DEFAULT_FREE_SHIPPING_THRESHOLD = 15000
DEFAULT_EXPRESS_SURCHARGE = 700

DEFAULT_SHIPPING_CONFIG = ShippingConfig(
    rates=DEFAULT_RATES,
    free_shipping_threshold=DEFAULT_FREE_SHIPPING_THRESHOLD,
    express_surcharge=DEFAULT_EXPRESS_SURCHARGE,
)


def total_weight(lines: Iterable) -> float:
    """Sum of ``weight_grams * quantity`` over cart or order lines.

    Lines without a weight count as weightless.
    """
    return sum((getattr(line, "weight_grams", None) or 0) * line.quantity for line in lines)


def _within_whole_gram_gap(weight: float, previous: ShippingRate | None, rate: ShippingRate) -> bool:
    if previous is None or previous.is_unbounded:
        return False
    return previous.max_weight < weight < rate.min_weight and rate.min_weight == previous.max_weight + 1


def select_rate(weight: float, rates: Iterable[ShippingRate]) -> ShippingRate:
    """Return the band that prices ``weight``.

    Raises:
        ConfigurationError: if no band covers the weight.
    """
    previous = None
    for rate in rates:
        if rate.covers(weight) or _within_whole_gram_gap(weight, previous, rate):
            return rate
        previous = rate

    raise ConfigurationError(f"No shipping rate covers a weight of {weight}g")


def compute_shipping_fee(
    total_weight_grams: float,
    subtotal: float,
    config: ShippingConfig,
    expedited: bool = False,
) -> float:
    """Delivery fee for a cart of the given weight and subtotal.

    The base fee is 0 at or above the free-shipping threshold and the
    matching band's fee below it. The express surcharge is added to the
    base fee whenever ``expedited`` is set, free shipping included.
    """
    if total_weight_grams < 0:
        raise ValidationError({"weight": ["Total weight cannot be negative"]})

    if subtotal >= config.free_shipping_threshold:
        fee = 0
    else:
        fee = select_rate(total_weight_grams, config.rates).fee
    if expedited:
        fee += config.express_surcharge
    return fee


def validate_rates(rates: list[ShippingRate]) -> None:
    """Reject rate tables that would leave some weight unpriced.

    A valid table is non-empty, ordered by ``min_weight``, starts at 0, has
    no overlaps or gaps (in whole grams), has no negative bounds or fees,
    and ends with exactly one open-ended band.
    """
    if not rates:
        raise ValidationError({"rates": ["At least one shipping rate is required"]})

    if rates[0].min_weight != 0:
        raise ValidationError({"rates": ["The first shipping rate must start at 0g"]})

    previous = None
    for index, rate in enumerate(rates):
        if rate.min_weight < 0 or rate.fee < 0:
            raise ValidationError({"rates": ["Shipping rate bounds and fees cannot be negative"]})

        last = index == len(rates) - 1
        if rate.is_unbounded and not last:
            raise ValidationError({"rates": ["Only the last shipping rate may be unbounded"]})
        if last and not rate.is_unbounded:
            raise ValidationError({"rates": ["The last shipping rate must be unbounded (maxWeight -1)"]})
        if not rate.is_unbounded and rate.max_weight < rate.min_weight:
            raise ValidationError({"rates": [f"Shipping rate starting at {rate.min_weight}g ends before it starts"]})

        if previous is not None:
            if rate.min_weight <= previous.max_weight:
                raise ValidationError({"rates": [f"Shipping rate starting at {rate.min_weight}g overlaps the previous rate"]})
            if rate.min_weight > previous.max_weight + 1:
                raise ValidationError(
                    {"rates": [f"Weights between {previous.max_weight}g and {rate.min_weight}g are not covered"]}
                )
        previous = rate


def build_config(
    rates: list[dict],
    free_shipping_threshold: float = DEFAULT_FREE_SHIPPING_THRESHOLD,
    express_surcharge: float = DEFAULT_EXPRESS_SURCHARGE,
) -> ShippingConfig:
    """Build a validated ``ShippingConfig`` from its persisted shape."""
    parsed = [ShippingRate.from_dict(rate) for rate in rates]
    validate_rates(parsed)

    if free_shipping_threshold is None or free_shipping_threshold < 0:
        raise ValidationError({"free_shipping_threshold": ["Free shipping threshold cannot be negative"]})
    if express_surcharge is None or express_surcharge < 0:
        raise ValidationError({"express_surcharge": ["Express surcharge cannot be negative"]})

    return ShippingConfig(
        rates=tuple(parsed),
        free_shipping_threshold=free_shipping_threshold,
        express_surcharge=express_surcharge,
    )
