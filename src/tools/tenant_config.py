"""
In-memory tenant configuration store.

Holds the raw profile and product rows as the hosted database returns them
and maps them through ``TenantConfig.from_profile``.
"""

import logging
from typing import Any, Optional

from src.schemas.tenant_schema import TenantConfig
from src.scheduling.errors import ConfigUnavailableError

logger = logging.getLogger(__name__)


class InMemoryTenantConfigStore:
    """Satisfies ``TenantConfigStore``."""

    def __init__(self) -> None:
        self._profiles: dict[str, dict[str, Any]] = {}
        self._products: dict[str, list[dict[str, Any]]] = {}

    def set_profile(
        self,
        tenant_id: str,
        profile: dict[str, Any],
        products: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        self._profiles[tenant_id] = dict(profile)
        self._products[tenant_id] = list(products or [])

    async def get_config(self, tenant_id: str) -> TenantConfig:
        """Return the tenant's config.

        Raises:
            ConfigUnavailableError: If no profile exists or it is invalid.
        """
        profile = self._profiles.get(tenant_id)
        if profile is None:
            raise ConfigUnavailableError(tenant_id, "profile not found")
        try:
            config = TenantConfig.from_profile(profile, self._products.get(tenant_id))
        except (ValueError, TypeError, KeyError) as exc:
            raise ConfigUnavailableError(tenant_id, str(exc)) from exc
        logger.debug("Config loaded for %s: %s", tenant_id, config)
        return config

    def reset(self) -> None:
        self._profiles.clear()
        self._products.clear()
