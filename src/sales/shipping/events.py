"""Domain events for the ShippingSettings aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer

from sales.domain import sales


@sales.event(part_of="ShippingSettings")
class ShippingSettingsUpdated:
    """An admin replaced the shipping rate table or thresholds."""

    __version__ = "v1"

    settings_id = Identifier(required=True)
    rate_count = Integer(required=True)
    free_shipping_threshold = Float(required=True)
    express_surcharge = Float(required=True)
    updated_at = DateTime(required=True)
