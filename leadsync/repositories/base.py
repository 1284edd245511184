"""
Base repository with generic CRUD operations.
"""
import uuid
from typing import TypeVar, Generic, Type, Optional, List, Sequence

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository with CRUD operations.
    Inherit and specify the model class.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, obj_in: dict) -> ModelType:
        """Create a new record."""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)
        return db_obj

    async def get(self, id: uuid.UUID) -> Optional[ModelType]:
        """Get a record by ID."""
        return await self.session.get(self.model, id)

    async def get_many(self, ids: Sequence[uuid.UUID]) -> List[ModelType]:
        """Get all records whose ID is in ids (missing IDs are simply absent)."""
        if not ids:
            return []
        query = select(self.model).where(self.model.id.in_(list(ids)))
        result = await self.session.exec(query)
        return result.all()

    def insert_ignoring_conflicts(self, rows: List[dict], index_elements: List[str]):
        """
        Build an INSERT ... ON CONFLICT DO NOTHING for the session's dialect.
        The statement's rowcount is the number of rows actually inserted.
        """
        dialect = self.session.bind.dialect.name if self.session.bind else "postgresql"
        insert = sqlite_insert if dialect == "sqlite" else pg_insert
        stmt = insert(self.model.__table__).values(rows)
        return stmt.on_conflict_do_nothing(index_elements=index_elements)
