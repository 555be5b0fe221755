"""Application tests for shipping settings and the config provider."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from sales.pricing.shipping import DEFAULT_SHIPPING_CONFIG
from sales.shipping.provider import ShippingConfigProvider
from sales.shipping.settings import UpdateShippingSettings, load_shipping_config

RATES = [
    {"minWeight": 0, "maxWeight": 1000, "fee": 400},
    {"minWeight": 1001, "maxWeight": -1, "fee": 1500},
]


def _save(rates=RATES, threshold=10000, surcharge=500):
    return current_domain.process(
        UpdateShippingSettings(
            rates=json.dumps(rates),
            free_shipping_threshold=threshold,
            express_surcharge=surcharge,
        ),
        asynchronous=False,
    )


class TestLoadShippingConfig:
    def test_defaults_until_saved(self):
        assert load_shipping_config() == DEFAULT_SHIPPING_CONFIG

    def test_saved_settings_are_loaded(self):
        _save()
        config = load_shipping_config()
        assert [rate.fee for rate in config.rates] == [400, 1500]
        assert config.free_shipping_threshold == 10000
        assert config.express_surcharge == 500


class TestUpdateShippingSettings:
    def test_returns_saved_config(self):
        config = _save()
        assert config.to_dict()["rates"] == RATES

    def test_saving_twice_replaces_settings(self):
        _save()
        _save(rates=[{"minWeight": 0, "maxWeight": -1, "fee": 999}], threshold=0)
        config = load_shipping_config()
        assert len(config.rates) == 1
        assert config.free_shipping_threshold == 0

    def test_gap_in_rates_rejected(self):
        with pytest.raises(ValidationError):
            _save(rates=[{"minWeight": 0, "maxWeight": 500, "fee": 400}, {"minWeight": 700, "maxWeight": -1, "fee": 900}])
        assert load_shipping_config() == DEFAULT_SHIPPING_CONFIG

    def test_bounded_last_rate_rejected(self):
        with pytest.raises(ValidationError):
            _save(rates=[{"minWeight": 0, "maxWeight": 500, "fee": 400}])


class TestShippingConfigProvider:
    def test_get_caches_until_invalidated(self):
        calls = []

        def loader():
            calls.append(1)
            return DEFAULT_SHIPPING_CONFIG

        provider = ShippingConfigProvider(loader)
        provider.get()
        provider.get()
        assert len(calls) == 1

        provider.invalidate()
        provider.get()
        assert len(calls) == 2

    def test_refresh_picks_up_saved_settings(self):
        cache = {}
        provider = ShippingConfigProvider(load_shipping_config, cache=cache)
        assert provider.get() == DEFAULT_SHIPPING_CONFIG

        _save()
        assert provider.get() == DEFAULT_SHIPPING_CONFIG
        assert provider.refresh().free_shipping_threshold == 10000
        assert cache["shipping_config"].free_shipping_threshold == 10000
