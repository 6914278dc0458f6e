from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from charging_simulator.config.constants import LOG_PREFIX_LABEL

logger = logging.getLogger(__name__)

# Legacy key -> canonical key, both top-level.
DEPRECATED_KEY_ALIASES: dict[str, str] = {
    "stationTemplateURLs": "stationTemplateUrls",
    "supervisionURLs": "supervisionUrls",
}


def log_prefix() -> str:
    return f"{datetime.now().strftime('%Y-%m-%d %H:%M:%S')} {LOG_PREFIX_LABEL}"


def _with_guidance(message: str, guidance: str) -> str:
    if guidance.strip():
        return f"{message}. {guidance}"
    return message


def warn_deprecated_configuration_key(
    document: Mapping[str, Any],
    key: str,
    section_name: Optional[str] = None,
    guidance: str = "",
) -> None:
    """
    Log a warning if a deprecated key is present in the document, even with a null value.

    When `section_name` is given the key is looked up inside that section first, then at
    the top level. The document is only read.
    """
    section = document.get(section_name) if section_name else None
    if isinstance(section, Mapping) and key in section:
        logger.warning(
            "%s %s",
            log_prefix(),
            _with_guidance(
                f"Deprecated configuration key '{key}' usage in section '{section_name}'",
                guidance,
            ),
        )
    elif key in document:
        logger.warning(
            "%s %s",
            log_prefix(),
            _with_guidance(f"Deprecated configuration key '{key}' usage", guidance),
        )


def warn_deprecated_configuration_section(
    document: Mapping[str, Any],
    section_name: str,
    replacement: str,
) -> None:
    if section_name in document:
        logger.warning(
            "%s Deprecated configuration section '%s' usage. Use '%s' instead",
            log_prefix(),
            section_name,
            replacement,
        )


def migrate_deprecated_keys(document: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return a copy of the document with legacy aliases copied to their canonical keys.

    Only fills a canonical key that is absent. Legacy keys stay in place so accessors can
    still report them.
    """
    migrated = dict(document)
    for legacy_key, canonical_key in DEPRECATED_KEY_ALIASES.items():
        if legacy_key in migrated and canonical_key not in migrated:
            migrated[canonical_key] = migrated[legacy_key]
    return migrated
