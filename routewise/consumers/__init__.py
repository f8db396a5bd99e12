"""Active consumers that sit behind routing subscriptions."""

from routewise.consumers.rescue import RescueConsumer

__all__ = ["RescueConsumer"]
