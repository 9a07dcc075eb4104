"""Pub/Sub module for KV-Engine."""

from .router import PubSubRouter, Subscription

__all__ = ["PubSubRouter", "Subscription"]
