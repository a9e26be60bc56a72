# Pricing module
from .resolver import FulfillmentResult, resolve_fulfillment, resolve_item_price, resolve_price

__all__ = ["FulfillmentResult", "resolve_fulfillment", "resolve_item_price", "resolve_price"]
