"""
Persistence collaborators for the orchestrator.

Public API:
    - DeploymentRepository: Protocol interface
    - InMemoryRepository: thread-safe dict-backed store
    - YamlFileRepository: single-file YAML store
    - NotFoundError, StoreError: Exceptions
"""

from .base import DeploymentRepository
from .memory import InMemoryRepository
from .yaml_store import YamlFileRepository
from .exceptions import NotFoundError, StoreError

__all__ = [
    "DeploymentRepository",
    "InMemoryRepository",
    "YamlFileRepository",
    "NotFoundError",
    "StoreError",
]
