"""Charging station simulator support packages."""

from charging_simulator.config import ConfigurationStore

__all__ = ["ConfigurationStore"]
