"""Dependency injection container for services."""

import logging
from pathlib import Path

from sdkvm.constants import CONFIG_FILENAME, SDKVM_HOME
from sdkvm.services.config_service import ConfigService
from sdkvm.services.manager import SdkManager

logger = logging.getLogger(__name__)

# ============================================================================
# Global service instances (Singleton pattern, but exposed via functions for easier testing/mocking)
# ============================================================================

_config_service_instance = None
_manager_instance = None


def get_home() -> Path:
    return SDKVM_HOME


def get_config_service() -> ConfigService:
    """Get config service (singleton)."""
    global _config_service_instance
    if _config_service_instance is None:
        _config_service_instance = ConfigService(get_home() / CONFIG_FILENAME)
        logger.info("Created ConfigService instance")
    return _config_service_instance


def get_manager() -> SdkManager:
    """Get SDK manager (singleton)."""
    global _manager_instance
    if _manager_instance is None:
        _manager_instance = SdkManager(get_home(), config=get_config_service().config)
        logger.info(f"Created SdkManager instance for {_manager_instance.home}")
    return _manager_instance


# Test utility function (for unit testing - resets all singletons)
def reset_services():
    """Reset all service instances (only for testing)."""
    global _config_service_instance, _manager_instance

    _config_service_instance = None
    _manager_instance = None
    logger.info("Reset all service instances")
