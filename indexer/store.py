"""Keyed entity store over a SQLAlchemy session."""

from __future__ import annotations

import logging
from typing import Any, Sequence, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from backend.db.base import Base

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=Base)


class EntityStore:
    """Load-by-key / persist / delete access used by every projector.

    Writes are flushed immediately so later lookups inside the same event see
    them; the surrounding savepoint decides whether they survive.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, model: type[EntityT], key: Any) -> EntityT | None:
        return self.session.get(model, key)

    def exists(self, model: type[EntityT], key: Any) -> bool:
        return self.session.get(model, key) is not None

    def add(self, entity: EntityT) -> EntityT:
        self.session.add(entity)
        self.session.flush()
        return entity

    def save(self) -> None:
        self.session.flush()

    def remove(self, entity: Base) -> None:
        self.session.delete(entity)
        self.session.flush()

    def all(self, statement: Select[Any]) -> Sequence[Any]:
        return self.session.scalars(statement).all()

    def find(self, model: type[EntityT], **filters: Any) -> list[EntityT]:
        statement = select(model).filter_by(**filters).order_by(*model.__mapper__.primary_key)
        return list(self.session.scalars(statement).all())
