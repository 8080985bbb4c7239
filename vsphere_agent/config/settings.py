"""Environment fallback used when no configuration file is present."""

import os
from typing import Optional


# Connection settings that must be present without a configuration file
REQUIRED_VARS = ("VSPHERE_URL", "VSPHERE_USERNAME", "VSPHERE_PASSWORD")

TRUE_PREFIXES = ("t", "y", "1")


class Settings:
    """VSPHERE_* and LOG_LEVEL environment variables."""

    @staticmethod
    def get(key: str, default: Optional[str] = None, required: bool = False) -> str:
        """
        Read one variable, empty string when unset.

        Raises:
            ValueError: If required and unset or empty
        """
        value = os.getenv(key, default)
        if required and not value:
            raise ValueError(f"Required environment variable not set: {key}")
        return value or ""

    @staticmethod
    def get_bool(key: str, default: bool = False) -> bool:
        """Read a flag; values starting with t, y or 1 are true."""
        value = os.getenv(key, "").strip()
        if not value:
            return default
        return value[0].lower() in TRUE_PREFIXES

    @staticmethod
    def validate_required() -> None:
        """
        Check that every connection variable is set.

        Raises:
            ValueError: Naming all missing variables
        """
        missing = [var for var in REQUIRED_VARS if not os.getenv(var)]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    DATACENTER = property(lambda self: Settings.get("VSPHERE_DATACENTER", "default"))
    INSECURE = property(lambda self: Settings.get_bool("VSPHERE_INSECURE", False))
    LOG_LEVEL = property(lambda self: Settings.get("LOG_LEVEL", "INFO"))
