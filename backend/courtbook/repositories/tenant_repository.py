"""Tenant and client data access."""

from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.tenant import Tenant, User, UserTenant
from .base_repository import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    def __init__(self, db: Session):
        super().__init__(db, Tenant)

    def get_client(self, client_id: int) -> Optional[User]:
        try:
            return self.db.get(User, client_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading client {client_id}: {str(e)}")
            raise RepositoryException(f"Failed to load client: {str(e)}")

    def link_client(self, tenant_id: int, client_id: int) -> UserTenant:
        """
        Link a client to a tenant; a no-op when the link already exists.

        The insert runs in a savepoint so a concurrent duplicate does not
        poison the caller's transaction.
        """
        existing = (
            self.db.query(UserTenant)
            .filter(UserTenant.tenant_id == tenant_id, UserTenant.user_id == client_id)
            .first()
        )
        if existing is not None:
            return existing
        try:
            with self.db.begin_nested():
                link = UserTenant(tenant_id=tenant_id, user_id=client_id)
                self.db.add(link)
            return link
        except IntegrityError:
            link = (
                self.db.query(UserTenant)
                .filter(UserTenant.tenant_id == tenant_id, UserTenant.user_id == client_id)
                .first()
            )
            if link is None:
                raise RepositoryException("Failed to link client to tenant")
            return link
        except SQLAlchemyError as e:
            self.logger.error(f"Error linking client {client_id} to tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to link client: {str(e)}")
