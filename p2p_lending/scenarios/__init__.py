"""Scenarios for generating realistic marketplace activity."""

from p2p_lending.scenarios.marketplace_activity import (
    MarketplaceActivityScenario,
    SimulatedClock,
)

__all__ = ["MarketplaceActivityScenario", "SimulatedClock"]
