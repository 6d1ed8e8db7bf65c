"""Resilient content gateway: upstream client, transforms and static fallback."""

from src.gateway.content_gateway import ContentGateway, GatewayResult
from src.gateway.static_content import StaticContent
from src.gateway.upstream import ContentDeliveryClient, EntryCollection, EntryQuery, create_delivery_client

__all__ = [
    "ContentDeliveryClient",
    "ContentGateway",
    "EntryCollection",
    "EntryQuery",
    "GatewayResult",
    "StaticContent",
    "create_delivery_client",
]
