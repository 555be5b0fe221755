"""Sales bounded context: cart pricing, coupons, shipping and the order lifecycle.

Turns cart lines into priced orders (weight-tiered shipping, coupon
discounts, subtotal/discount/fee/total arithmetic) and then advances each
order through its status and payment state machines.
"""

import structlog
from protean.domain import Domain

sales = Domain(name="sales")

logger = structlog.get_logger(__name__)
