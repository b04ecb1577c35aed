"""SQLModel implementation of Category repository."""

from __future__ import annotations

from sqlmodel import select

from ...models.category import Category
from ..database import SessionFactory


class SQLModelCategoryRepository:
    """SQLModel-based category repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def list_all(self, *, user_id: int) -> list[Category]:
        with self.session_factory() as session:
            statement = (
                select(Category).where(Category.user_id == user_id).order_by(Category.name)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, category: Category, *, user_id: int) -> Category:
        with self.session_factory() as session:
            category.user_id = user_id
            session.add(category)
            session.commit()
            session.refresh(category)
            session.expunge(category)
            return category
