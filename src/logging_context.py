"""Tenant ID logging context for tracing engine work across modules.

Every record passing through a handler set up by ``attach_tenant_context``
carries the tenant currently being served and renders it in brackets, so a
refresh or booking for one business can be followed through the aggregator,
engine and cache.

Usage:
    from src.logging_context import get_tenant_logger, tenant_context

    logger = get_tenant_logger(__name__)
    with tenant_context("user-123"):
        logger.info("Refreshing snapshot")
        # 2025-03-17 08:00:00 [src.x] [user-123] INFO: Refreshing snapshot
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

NO_TENANT = "-"
LOG_FORMAT = "%(asctime)s [%(name)s] [%(tenant_id)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_tenant_id: ContextVar[str] = ContextVar("tenant_id", default=NO_TENANT)


def set_tenant_id(tenant_id: str) -> None:
    """Set the tenant ID for the current async context."""
    _tenant_id.set(tenant_id)


def get_tenant_id() -> str:
    """Retrieve the current tenant ID."""
    return _tenant_id.get()


@contextmanager
def tenant_context(tenant_id: str) -> Iterator[None]:
    """Tag records logged inside the block with ``tenant_id``."""
    token = _tenant_id.set(tenant_id)
    try:
        yield
    finally:
        _tenant_id.reset(token)


class TenantIdFilter(logging.Filter):
    """Injects tenant_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "tenant_id"):
            record.tenant_id = _tenant_id.get()  # type: ignore[attr-defined]
        return True


def get_tenant_logger(name: str) -> logging.Logger:
    """Return a logger with the TenantIdFilter attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, TenantIdFilter) for f in logger.filters):
        logger.addFilter(TenantIdFilter())
    return logger


def attach_tenant_context(
    handler: logging.Handler,
    fmt: str = LOG_FORMAT,
    datefmt: str = DATE_FORMAT,
) -> logging.Handler:
    """Give ``handler`` the tenant filter and a format that renders it.

    The filter sits on the handler as well as on tenant loggers so records
    from plain ``logging.getLogger`` loggers format without a KeyError.
    """
    if not any(isinstance(f, TenantIdFilter) for f in handler.filters):
        handler.addFilter(TenantIdFilter())
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def configure_logging(level: str) -> None:
    """Install a tenant-aware stream handler on the root logger once."""
    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.addHandler(attach_tenant_context(logging.StreamHandler()))
