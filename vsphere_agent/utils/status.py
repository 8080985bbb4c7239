"""Virtual machine power state enumeration."""

from enum import Enum
from typing import Optional


class PowerState(Enum):
    """Virtual machine power state as reported by vSphere."""

    POWERED_OFF = "poweredOff"
    SUSPENDED = "suspended"
    POWERED_ON = "poweredOn"

    def to_ordinal(self) -> int:
        """
        Convert power state to the ordinal consumed downstream.

        Returns:
            int: 0 for powered off, 1 for suspended, 2 for powered on
        """
        return {
            PowerState.POWERED_OFF: 0,
            PowerState.SUSPENDED: 1,
            PowerState.POWERED_ON: 2
        }[self]

    @classmethod
    def parse(cls, value) -> Optional["PowerState"]:
        """Map a vim.VirtualMachinePowerState (or its string value) to PowerState, None if unknown."""
        if value is None:
            return None
        try:
            return cls(str(value))
        except ValueError:
            return None
