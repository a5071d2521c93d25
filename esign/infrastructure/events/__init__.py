"""Event publishers"""
from .eventbridge_publisher import EventBridgeEventPublisher
from .outbox_event_publisher import OutboxEventPublisher

__all__ = ["EventBridgeEventPublisher", "OutboxEventPublisher"]
