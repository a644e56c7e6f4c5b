"""
Settings collaborator: the vibration flag.

Kept under its own key as the literal "1" or "0". Missing or unreadable
means enabled.
"""

import logging

from .records import STORAGE_ERRORS

logger = logging.getLogger(__name__)

VIBRATION_KEY = "settings_vibration_enabled_v1"


def get_vibration(kv) -> bool:
    try:
        saved = kv.get_item(VIBRATION_KEY)
    except STORAGE_ERRORS:
        logger.warning("Could not read vibration setting", exc_info=True)
        return True
    if saved is None:
        return True
    return saved == "1"


def set_vibration(kv, enabled: bool) -> None:
    try:
        kv.set_item(VIBRATION_KEY, "1" if enabled else "0")
    except STORAGE_ERRORS:
        logger.warning("Could not save vibration setting", exc_info=True)
