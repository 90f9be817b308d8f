"""Service-level settings read from the ``[custom]`` table of ``domain.toml``."""

from storefront.domain import storefront


def custom_setting(name, default):
    custom = storefront.config.get("custom", {}) or {}
    return custom.get(name, default)


TRACKING_CODE_LENGTH = int(custom_setting("TRACKING_CODE_LENGTH", 12))
MIN_PHONE_DIGITS = int(custom_setting("MIN_PHONE_DIGITS", 8))
GUEST_CART_KEY = str(custom_setting("GUEST_CART_KEY", "cart"))
MERGE_TOKEN_HISTORY = int(custom_setting("MERGE_TOKEN_HISTORY", 20))
