"""Tenant and domain repositories for DynamoDB operations."""

import time

import structlog

from leadfunnel.models.question import validate_questions
from leadfunnel.models.tenant import Tenant, TenantDomain, normalize_host
from leadfunnel.repositories.base import BaseRepository
from leadfunnel.utils.exceptions import ConflictError, ValidationError

logger = structlog.get_logger()


class DomainRepository(BaseRepository[TenantDomain]):
    """Repository for host → tenant mappings."""

    def __init__(self, table_name: str | None = None):
        """Initialize domain repository."""
        super().__init__(TenantDomain, table_name)

    def get_mapping(self, domain: str) -> TenantDomain | None:
        """Get the mapping for a host, or None if the host is unknown."""
        items = self.query(
            pk=f"DOMAIN#{normalize_host(domain)}",
            sk_begins_with="TENANT#",
            limit=1,
        )
        return items[0] if items else None

    def list_by_tenant(self, tenant_id: str) -> list[TenantDomain]:
        """List a tenant's domains using GSI1, primary domain first."""
        items = self.query(pk=f"TENANT#{tenant_id}#DOMAINS", index_name="GSI1")
        return sorted(items, key=lambda d: (not d.is_primary, d.created_at))

    def add_domain(self, tenant_id: str, domain: str, is_primary: bool = False) -> TenantDomain:
        """Map a host to a tenant.

        Raises:
            ConflictError: If the host is already mapped.
        """
        mapping = TenantDomain(tenant_id=tenant_id, domain=domain, is_primary=is_primary)
        existing = self.get_mapping(mapping.domain)
        if existing:
            raise ConflictError(f"Domain {mapping.domain} is already in use")
        return self.create(mapping, gsi_keys=mapping.get_gsi1_keys())

    def remove_domain(self, tenant_id: str, domain: str) -> bool:
        """Remove a host mapping. Returns False if it did not exist."""
        return self.delete(pk=f"DOMAIN#{normalize_host(domain)}", sk=f"TENANT#{tenant_id}")


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant entities."""

    def __init__(self, table_name: str | None = None):
        """Initialize tenant repository."""
        super().__init__(Tenant, table_name)
        self.domains = DomainRepository(table_name)

    def get_by_id(self, tenant_id: str) -> Tenant | None:
        """Load tenant by id (the funnel's app_id)."""
        started = time.monotonic()
        tenant = self.get(pk=f"TENANT#{tenant_id}", sk="META")
        logger.debug(
            "Tenant lookup",
            query="get_by_id",
            tenant_id=tenant_id,
            found=tenant is not None,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return tenant

    def get_by_domain(self, domain: str) -> Tenant | None:
        """Resolve a tenant by request host (e.g. lionsden.example.com)."""
        started = time.monotonic()
        mapping = self.domains.get_mapping(domain)
        tenant = self.get_by_id(mapping.tenant_id) if mapping else None
        logger.debug(
            "Tenant lookup",
            query="get_by_domain",
            domain=domain,
            found=tenant is not None,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return tenant

    def create_tenant(self, tenant: Tenant, domain: str | None = None) -> Tenant:
        """Create a tenant and, optionally, its primary domain.

        Raises:
            ValidationError: If the questions cannot run in a live funnel.
        """
        self._check_questions(tenant)
        tenant = self.create(tenant)
        if domain:
            self.domains.add_domain(tenant.id, domain, is_primary=True)
        logger.info("Tenant created", tenant_id=tenant.id, domain=domain)
        return tenant

    def update_tenant(self, tenant: Tenant) -> Tenant:
        """Save config/question edits with optimistic locking.

        Raises:
            ValidationError: If the questions cannot run in a live funnel.
            ConflictError: If the tenant changed since it was read.
        """
        self._check_questions(tenant)
        return self.update(tenant)

    def _check_questions(self, tenant: Tenant) -> None:
        try:
            validate_questions(tenant.questions)
        except ValueError as e:
            logger.info("Tenant questions rejected", tenant_id=tenant.id, reason=str(e))
            raise ValidationError(str(e)) from e

    def list_domains(self, tenant_id: str) -> list[str]:
        """Get all host names for a tenant."""
        return [d.domain for d in self.domains.list_by_tenant(tenant_id)]
