"""Delivery module."""

from .service import DeliveryResult, HttpDeliveryService, IDeliveryService

__all__ = ["DeliveryResult", "HttpDeliveryService", "IDeliveryService"]
