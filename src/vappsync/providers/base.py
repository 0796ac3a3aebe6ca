"""Base provider interface."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from vappsync.models.state import ContainerState


Checkpoint = Callable[[], Awaitable[None]]


class ProviderStatus(Enum):
    """Provider resource status."""
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"
    ERROR = "error"


class BaseProvider(ABC):
    """Base provider interface that all providers must implement.

    Every method receives the cycle's session explicitly; providers keep no
    remote connection of their own.
    """

    @abstractmethod
    async def initialize(self, config: Any):
        """Initialize the provider with configuration."""
        pass

    @abstractmethod
    async def status(self, session, spec: BaseModel) -> ProviderStatus:
        """Check the current status of a resource."""
        pass

    @abstractmethod
    async def present(
        self,
        session,
        spec: BaseModel,
        state: ContainerState,
        checkpoint: Optional[Checkpoint] = None,
    ) -> ContainerState:
        """Ensure the resource is present and matches spec; return the new baseline."""
        pass

    @abstractmethod
    async def absent(
        self,
        session,
        spec: BaseModel,
        state: Optional[ContainerState],
        checkpoint: Optional[Checkpoint] = None,
    ) -> None:
        """Ensure the resource is absent."""
        pass

    @abstractmethod
    async def validate_spec(self, spec: BaseModel) -> bool:
        """Validate the resource specification."""
        pass
