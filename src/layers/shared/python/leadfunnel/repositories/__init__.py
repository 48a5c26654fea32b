"""Repository classes for DynamoDB data access."""

from leadfunnel.repositories.base import BaseRepository
from leadfunnel.repositories.tenant import DomainRepository, TenantRepository

__all__ = [
    "BaseRepository",
    "DomainRepository",
    "TenantRepository",
]
