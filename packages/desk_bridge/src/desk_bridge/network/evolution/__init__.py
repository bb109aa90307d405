"""
Evolution API Gateway

Gateway for Evolution API (WhatsApp Web integration via Baileys).
"""

from desk_bridge.network.evolution.client import EvolutionGateway
from desk_bridge.network.evolution.webhook import (
    parse_messages_upsert,
    validate_api_key,
)

__all__ = [
    "EvolutionGateway",
    "parse_messages_upsert",
    "validate_api_key",
]
