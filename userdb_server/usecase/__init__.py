"""
Usecase module for UserDB server.

This module contains the business logic between the API and storage:
- UserUsecase: request validation, result shaping, existence semantics
- Streaming export over a bounded delivery channel

Invariants:
    - Usecases never touch gRPC types
    - Usecases never depend on a concrete storage backend

How to change safely:
    - Keep the servicer free of business logic; add it here instead
"""

from .channel import ChannelClosedError, Receiver, Sender, open_channel
from .users import BATCH_SIZE, CHANNEL_CAPACITY, UserUsecase

__all__ = [
    "UserUsecase",
    "BATCH_SIZE",
    "CHANNEL_CAPACITY",
    # Channel
    "open_channel",
    "Sender",
    "Receiver",
    "ChannelClosedError",
]
