"""Authenticated WebSocket gateway delivering room events."""

from __future__ import annotations

from .connection import Connection, ConnectionState
from .gateway import ChannelGateway
from .registry import RoomRegistry

__all__ = ["ChannelGateway", "Connection", "ConnectionState", "RoomRegistry"]
