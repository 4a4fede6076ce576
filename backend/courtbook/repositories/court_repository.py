"""Tenant-scoped court lookups."""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.court import Court
from .base_repository import BaseRepository


class CourtRepository(BaseRepository[Court]):
    def __init__(self, db: Session):
        super().__init__(db, Court)

    def get_for_tenant(self, tenant_id: int, court_id: int) -> Optional[Court]:
        """Return the court only if it belongs to the tenant, with its type loaded."""
        try:
            return (
                self.db.query(Court)
                .options(joinedload(Court.court_type))
                .filter(Court.id == court_id, Court.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading court {court_id} for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to load court: {str(e)}")
