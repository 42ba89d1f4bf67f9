"""Base DAO abstract class."""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from sqlalchemy.sql import Select

from upqueue.database import Database

# ORM model and pydantic domain model a DAO converts between
M = TypeVar("M")
T = TypeVar("T")


class BaseDAO(ABC, Generic[M, T]):
    """Shared plumbing for Data Access Objects.

    Subclasses implement ``_to_domain``; the fetch helpers run a select in
    its own session and hand back domain models, so ORM instances never
    escape the DAO layer.
    """

    def __init__(self, database: Database):
        self._db = database

    @property
    def db(self) -> Database:
        return self._db

    @staticmethod
    @abstractmethod
    def _to_domain(model: M) -> T:
        """Convert one ORM row to its domain model."""

    async def _fetch_one(self, stmt: Select[Any]) -> T | None:
        async with self._db.session() as session:
            model = (await session.execute(stmt)).scalar_one_or_none()
            return self._to_domain(model) if model is not None else None

    async def _fetch_all(self, stmt: Select[Any]) -> list[T]:
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [self._to_domain(m) for m in result.scalars().all()]
