"""Tracking codes printed on delivery labels.

The QR code on a label carries only the last characters of the order id,
upper-cased, to keep the payload small. People also type these by hand,
so input is normalized before any comparison.
"""

from storefront.settings import TRACKING_CODE_LENGTH


def tracking_code_for(order_id) -> str:
    return str(order_id)[-TRACKING_CODE_LENGTH:].upper()


def normalize_identifier(raw) -> str:
    """Strip whitespace and a leading ``#`` copied from a printed label."""
    return str(raw or "").strip().lstrip("#").strip()
