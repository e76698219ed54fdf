"""
Optional Redis fan-out.

Public API:
    EventPublisher: publishes articles and market snapshots to Redis
    channels: channel name constants and channels_for_article()
"""
from newsdesk.pubsub import channels
from newsdesk.pubsub.publisher import EventPublisher

__all__ = [
    "EventPublisher",
    "channels",
]
