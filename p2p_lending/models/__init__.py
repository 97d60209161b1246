"""Domain models for the lending core."""

from p2p_lending.models.base import Event

__all__ = ["Event"]
