"""
Persistence backends and the connectivity service built on them.
"""

from .persistence import EntityStore, Persistence
from .memory import InMemoryPersistence
from .rest import RestPersistence
from .connectivity import ConnectivityService

__all__ = [
    'EntityStore',
    'Persistence',
    'InMemoryPersistence',
    'RestPersistence',
    'ConnectivityService',
]
