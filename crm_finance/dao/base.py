"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern separates database operations from business logic,
making the services testable against a real session and keeping query
construction in one place.

Every read of a tenant-owned model takes the org_id explicitly. There is no
unscoped lookup by primary key, so a missing filter cannot leak rows across
organizations.
"""

from typing import Generic, TypeVar, Type, Optional, List, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.models.base import Base

# Type variable for model class
ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Base Data Access Object providing org-scoped CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize DAO with model class and database session.

        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        if not hasattr(model, "org_id"):
            raise AttributeError(
                f"{model.__name__} is not a multi-tenant model (no org_id field)"
            )
        self.model = model
        self.session = session

    def _apply_filters(self, query, **filters: Any):
        for field, value in filters.items():
            if not hasattr(self.model, field):
                raise AttributeError(f"{self.model.__name__} has no field '{field}'")
            if value is not None:
                query = query.where(getattr(self.model, field) == value)
        return query

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Field values for the new record (must include org_id)

        Returns:
            The created model instance with database-generated fields populated

        Raises:
            IntegrityError: If unique constraints are violated
        """
        if kwargs.get("org_id") is None:
            raise ValueError(f"{self.model.__name__} requires org_id")

        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()  # Flush to get auto-generated fields
        await self.session.refresh(instance)
        return instance

    async def get_by_id_and_org(self, id: int, org_id: int) -> Optional[ModelType]:
        """
        Retrieve a record by ID, ensuring it belongs to the organization.

        Args:
            id: Primary key value
            org_id: Organization ID that must own the record

        Returns:
            The model instance if found and owned by org, None otherwise
        """
        result = await self.session.execute(
            select(self.model).where(
                self.model.id == id,
                self.model.org_id == org_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_org(
        self,
        org_id: int,
        skip: int = 0,
        limit: int = 100,
        **filters: Any,
    ) -> List[ModelType]:
        """
        Retrieve records of an organization with optional filters.

        Filters whose value is None are ignored, so optional query params can
        be passed straight through.

        Args:
            org_id: Organization ID to filter by
            skip: Number of records to skip (for pagination)
            limit: Maximum number of records to return
            **filters: Field name to value filters

        Returns:
            List of model instances, newest first
        """
        query = self._apply_filters(select(self.model).where(self.model.org_id == org_id), **filters)
        query = query.order_by(self.model.id.desc()).offset(skip).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """
        Apply field changes to a loaded instance and flush them.

        Args:
            instance: Instance previously loaded with an org-scoped read
            **kwargs: Fields to update

        Returns:
            The updated instance
        """
        for field, value in kwargs.items():
            if not hasattr(instance, field):
                raise AttributeError(f"{self.model.__name__} has no field '{field}'")
            setattr(instance, field, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, instance: ModelType) -> None:
        await self.session.delete(instance)
        await self.session.flush()

    async def count(self, org_id: int, **filters: Any) -> int:
        """
        Count records of an organization matching filters.

        Args:
            org_id: Organization ID
            **filters: Field name to value filters

        Returns:
            Number of records matching the filters
        """
        query = self._apply_filters(
            select(func.count(self.model.id)).where(self.model.org_id == org_id),
            **filters,
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def exists(self, org_id: int, **filters: Any) -> bool:
        """
        Check if any records matching filters exist in the organization.

        Returns:
            True if at least one matching record exists
        """
        query = self._apply_filters(
            select(self.model.id).where(self.model.org_id == org_id),
            **filters,
        ).limit(1)
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None
