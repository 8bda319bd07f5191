"""Tests for tenant configuration models and the in-memory config store."""

import pytest
from pydantic import ValidationError

from src.schemas.tenant_schema import (
    BusinessHours,
    FixedDuration,
    PerService,
    Product,
    TenantConfig,
)
from src.scheduling.errors import ConfigUnavailableError
from src.tools.tenant_config import InMemoryTenantConfigStore
from tests.conftest import make_config, profile_row


class TestBusinessHours:
    def test_open_must_precede_close(self):
        with pytest.raises(ValidationError):
            BusinessHours(open=18, close=9)

    def test_hours_bounded(self):
        with pytest.raises(ValidationError):
            BusinessHours(open=9, close=25)


class TestDurationMode:
    def test_fixed_duration(self):
        config = make_config(duration=45)
        assert config.effective_duration() == 45
        assert not config.is_per_service
        assert config.services == []

    def test_per_service_uses_shortest_by_default(self):
        config = make_config(services=[("Corte", 30), ("Barba", 20)])
        assert config.is_per_service
        assert config.effective_duration() == 20

    def test_per_service_product_lookup(self):
        config = make_config(services=[("Corte", 30), ("Barba", 20)])
        assert config.effective_duration("corte") == 30

    def test_unknown_product_falls_back_to_shortest(self):
        config = make_config(services=[("Corte", 30), ("Barba", 20)])
        assert config.effective_duration("nope") == 20

    def test_per_service_requires_services(self):
        with pytest.raises(ValidationError):
            PerService(services=[])

    def test_discriminated_by_mode(self):
        config = TenantConfig.model_validate(
            {"duration_mode": {"mode": "per_service",
                               "services": [{"id": "a", "name": "A", "duration_minutes": 15}]}}
        )
        assert isinstance(config.duration_mode, PerService)

    def test_positive_minutes(self):
        with pytest.raises(ValidationError):
            FixedDuration(minutes=0)


class TestTenantConfigValidation:
    def test_working_days_range(self):
        with pytest.raises(ValidationError, match="working_days"):
            TenantConfig(working_days=frozenset({7}))

    def test_per_weekday_keys_range(self):
        with pytest.raises(ValidationError, match="per_weekday_hours"):
            TenantConfig(per_weekday_hours={9: BusinessHours(open=9, close=12)})

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValidationError):
            TenantConfig(buffer_minutes=-5)

    def test_config_is_frozen(self):
        config = make_config()
        with pytest.raises(ValidationError):
            config.buffer_minutes = 10


class TestFromProfile:
    def test_business_hours(self):
        config = TenantConfig.from_profile(profile_row())
        assert config.global_hours == BusinessHours(open=9, close=18)
        assert config.working_days == frozenset({1, 2, 3, 4, 5})
        assert config.duration_mode == FixedDuration(minutes=30)

    def test_availability_hours_take_precedence(self):
        config = TenantConfig.from_profile(
            profile_row(availability_hour_open=10, availability_hour_close=16)
        )
        assert config.global_hours == BusinessHours(open=10, close=16)

    def test_hours_per_day_skips_incomplete_entries(self):
        config = TenantConfig.from_profile(
            profile_row(hours_per_day={"6": {"open": 9, "close": 13}, "1": {"open": 10}})
        )
        assert config.per_weekday_hours == {6: BusinessHours(open=9, close=13)}

    def test_missing_working_days_means_every_day(self):
        config = TenantConfig.from_profile(profile_row(working_days=None))
        assert config.working_days == frozenset(range(7))

    def test_product_durations(self):
        products = [
            {"id": 1, "name": "Corte", "duration": 30, "price": 15},
            {"id": 2, "name": "Barba", "duration": 20, "active": False},
            {"id": 3, "name": "Sem duração", "duration": None},
        ]
        config = TenantConfig.from_profile(profile_row(product_duration_enabled=True), products)
        assert config.services == [Product(id="1", name="Corte", duration_minutes=30, price=15)]

    def test_product_mode_without_products_stays_fixed(self):
        config = TenantConfig.from_profile(profile_row(product_duration_enabled=True), [])
        assert isinstance(config.duration_mode, FixedDuration)

    def test_buffer(self):
        config = TenantConfig.from_profile(profile_row(buffer_minutes=10))
        assert config.buffer_minutes == 10


class TestInMemoryTenantConfigStore:
    @pytest.mark.asyncio
    async def test_returns_config(self):
        store = InMemoryTenantConfigStore()
        store.set_profile("t1", profile_row())
        config = await store.get_config("t1")
        assert config.effective_duration() == 30

    @pytest.mark.asyncio
    async def test_unknown_tenant(self):
        store = InMemoryTenantConfigStore()
        with pytest.raises(ConfigUnavailableError, match="t9"):
            await store.get_config("t9")

    @pytest.mark.asyncio
    async def test_invalid_profile(self):
        store = InMemoryTenantConfigStore()
        store.set_profile("t1", profile_row(business_hour_open=20, business_hour_close=10))
        with pytest.raises(ConfigUnavailableError):
            await store.get_config("t1")
