from __future__ import annotations

from typing import Mapping, Optional

from charging_simulator.config.constants import CLOUD_FOUNDRY_ENV_VAR, PORT_ENV_VAR


def is_cloud_foundry_environment(env: Mapping[str, str]) -> bool:
    """Return True when running on Cloud Foundry, which dictates the bind port."""
    return env.get(CLOUD_FOUNDRY_ENV_VAR) is not None


def platform_port(env: Mapping[str, str]) -> Optional[int]:
    raw = env.get(PORT_ENV_VAR)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None
