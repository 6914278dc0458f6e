"""Simulator configuration store: cached document, section views, hot reload."""

from charging_simulator.config.errors import ReloadCallbackError
from charging_simulator.config.store import ConfigurationStore

__all__ = ["ConfigurationStore", "ReloadCallbackError"]
