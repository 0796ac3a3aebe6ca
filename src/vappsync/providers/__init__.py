"""Resource providers for vappsync."""

from vappsync.providers.base import BaseProvider, ProviderStatus
from vappsync.providers.vapp import VAppProvider

__all__ = [
    "BaseProvider",
    "ProviderStatus",
    "VAppProvider",
]
