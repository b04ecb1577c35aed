"""SQLModel implementation of User repository."""

from __future__ import annotations

from sqlmodel import select

from ...models.user import User
from ..database import SessionFactory


class SQLModelUserRepository:
    """Owner lookup and bootstrap; authentication lives elsewhere."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get_or_create(self, username: str) -> User:
        username = username.strip()
        if not username:
            raise ValueError("Username is required")
        with self.session_factory() as session:
            user = session.exec(select(User).where(User.username == username)).first()
            if user is None:
                user = User(username=username)
                session.add(user)
                session.commit()
                session.refresh(user)
            session.expunge(user)
            return user
