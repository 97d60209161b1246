"""Synthetic data generators for the lending marketplace."""

from p2p_lending.generators.marketplace import ListingGenerator, UserGenerator

__all__ = ["ListingGenerator", "UserGenerator"]
