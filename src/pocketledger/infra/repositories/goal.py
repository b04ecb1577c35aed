"""SQLModel implementation of Goal repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...models.goal import Goal
from ..database import SessionFactory


class SQLModelGoalRepository:
    """SQLModel-based goal repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get_by_id(self, goal_id: int, *, user_id: int) -> Optional[Goal]:
        with self.session_factory() as session:
            obj = session.exec(
                select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Goal]:
        with self.session_factory() as session:
            statement = (
                select(Goal).where(Goal.user_id == user_id).order_by(Goal.created_at, Goal.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows
