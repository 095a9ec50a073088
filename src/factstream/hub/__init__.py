"""Broadcast hub core: subscribers, history, fan-out and delivery."""

from factstream.hub.broadcast import BroadcastHub
from factstream.hub.errors import (
    BroadcastError,
    HubClosed,
    InvalidPayload,
    QueueOverflow,
    ResourceExhausted,
    TransportWriteFailed,
)
from factstream.hub.ingress import FactIngress
from factstream.hub.subscriber import OverflowPolicy, Subscriber, SubscriberState
from factstream.hub.worker import DeliveryWorker

__all__ = [
    "BroadcastError",
    "BroadcastHub",
    "DeliveryWorker",
    "FactIngress",
    "HubClosed",
    "InvalidPayload",
    "OverflowPolicy",
    "QueueOverflow",
    "ResourceExhausted",
    "Subscriber",
    "SubscriberState",
    "TransportWriteFailed",
]
