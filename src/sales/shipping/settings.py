"""Shipping settings aggregate: the admin-managed shipping configuration.

There is a single settings record. Until an admin saves one, pricing uses
``DEFAULT_SHIPPING_CONFIG``.
"""

import json
from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Text
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.pricing.shipping import (
    DEFAULT_EXPRESS_SURCHARGE,
    DEFAULT_FREE_SHIPPING_THRESHOLD,
    DEFAULT_RATES,
    DEFAULT_SHIPPING_CONFIG,
    ShippingConfig,
    ShippingRate,
    build_config,
)
from sales.shipping.events import ShippingSettingsUpdated

SETTINGS_ID = "default"


@sales.aggregate
class ShippingSettings:
    rates = Text()  # JSON array of {minWeight, maxWeight, fee}
    free_shipping_threshold = Float(min_value=0.0)
    express_surcharge = Float(min_value=0.0)
    updated_at = DateTime()

    def to_config(self) -> ShippingConfig:
        """Stored settings as a ``ShippingConfig``; missing parts fall back to defaults."""
        stored_rates = json.loads(self.rates) if self.rates else []
        rates = tuple(ShippingRate.from_dict(rate) for rate in stored_rates) or DEFAULT_RATES
        return ShippingConfig(
            rates=rates,
            free_shipping_threshold=(
                self.free_shipping_threshold
                if self.free_shipping_threshold is not None
                else DEFAULT_FREE_SHIPPING_THRESHOLD
            ),
            express_surcharge=(
                self.express_surcharge if self.express_surcharge is not None else DEFAULT_EXPRESS_SURCHARGE
            ),
        )

    def replace_config(self, config: ShippingConfig):
        now = datetime.now(UTC)
        self.rates = json.dumps([rate.to_dict() for rate in config.rates])
        self.free_shipping_threshold = config.free_shipping_threshold
        self.express_surcharge = config.express_surcharge
        self.updated_at = now

        self.raise_(
            ShippingSettingsUpdated(
                settings_id=str(self.id),
                rate_count=len(config.rates),
                free_shipping_threshold=config.free_shipping_threshold,
                express_surcharge=config.express_surcharge,
                updated_at=now,
            )
        )


@sales.repository(part_of=ShippingSettings)
class ShippingSettingsRepository:
    def load_config(self) -> ShippingConfig:
        try:
            settings = self.get(SETTINGS_ID)
        except ObjectNotFoundError:
            return DEFAULT_SHIPPING_CONFIG
        return settings.to_config()


def load_shipping_config() -> ShippingConfig:
    """Authoritative shipping configuration from the settings store."""
    return current_domain.repository_for(ShippingSettings).load_config()


@sales.command(part_of="ShippingSettings")
class UpdateShippingSettings:
    rates = Text(required=True)  # JSON array of {minWeight, maxWeight, fee}
    free_shipping_threshold = Float(default=DEFAULT_FREE_SHIPPING_THRESHOLD)
    express_surcharge = Float(default=DEFAULT_EXPRESS_SURCHARGE)


@sales.command_handler(part_of=ShippingSettings)
class ShippingSettingsHandler:
    @handle(UpdateShippingSettings)
    def update_shipping_settings(self, command):
        rates = json.loads(command.rates) if isinstance(command.rates, str) else command.rates
        config = build_config(rates, command.free_shipping_threshold, command.express_surcharge)

        repo = current_domain.repository_for(ShippingSettings)
        try:
            settings = repo.get(SETTINGS_ID)
        except ObjectNotFoundError:
            settings = ShippingSettings(id=SETTINGS_ID)

        settings.replace_config(config)
        repo.add(settings)

        logger.info(
            "shipping_settings_updated",
            rate_count=len(config.rates),
            free_shipping_threshold=config.free_shipping_threshold,
        )
        return config
