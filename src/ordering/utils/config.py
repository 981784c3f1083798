"""Access to the ordering policy parameters kept under ``[custom]`` in domain.toml."""

from protean.utils.globals import current_domain

DEFAULTS = {
    "CANCELLATION_WINDOW_SECONDS": 60,
    "ORDER_NUMBER_TIMEZONE": "UTC",
    "ORDER_NUMBER_MAX_ATTEMPTS": 5,
    "STORE_ORDERS_PAGE_SIZE": 20,
}


def setting(name: str, default=None):
    """Return a custom configuration value, falling back to the built-in default."""
    fallback = DEFAULTS.get(name) if default is None else default
    if not current_domain:
        return fallback

    custom = current_domain.config.get("custom") or {}
    return custom.get(name, fallback)
