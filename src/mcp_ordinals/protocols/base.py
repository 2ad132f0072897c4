"""Base protocol class for script-embedded records."""

from abc import ABC, abstractmethod


class Protocol(ABC):
    """Base class for records that serialize into Bitcoin script bytes."""

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Convert to the raw payload bytes."""
        pass

    @abstractmethod
    def to_script(self) -> bytes:
        """Convert to the complete script carrying the payload."""
        pass
