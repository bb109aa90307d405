"""
Bridge Service Layer

Handlers for relaying messages in both directions.
"""

from desk_bridge.service.inbound_handler import InboundHandler
from desk_bridge.service.outbound_handler import OutboundHandler

__all__ = [
    "InboundHandler",
    "OutboundHandler",
]
