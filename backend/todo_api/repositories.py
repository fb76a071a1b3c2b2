"""
Store access for users and todos.

Every ``TodoRepository`` method takes the owner's ``user_id`` first and filters
on it, so a todo id belonging to someone else behaves exactly like an id that
does not exist.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import ConflictError, NotFoundError, StoreError
from .models import Todo, User, new_id

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

_UPDATABLE = ("title", "description", "is_completed")
# these columns are NOT NULL in spirit; a null in a patch means "leave as is"
_NON_NULLABLE = ("title", "is_completed")


@contextmanager
def _store_errors(s: Session, conflict_message: str | None = None) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        s.rollback()
        if conflict_message is None:
            raise StoreError(str(exc.orig)) from exc
        logger.info("Uniqueness conflict: %s", exc.orig)
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        s.rollback()
        logger.exception("Store failure")
        raise StoreError(f"Database error: {exc}") from exc


class UserRepository:
    def __init__(self, session: Session):
        self.s = session

    def create(self, username: str, email: str, password_hash: str) -> str:
        user_id = new_id()
        with _store_errors(self.s, "User with that email already exists"):
            self.s.add(User(id=user_id, username=username, email=email, password_hash=password_hash))
            self.s.commit()
        return user_id

    def find_by_email(self, email: str) -> User | None:
        with _store_errors(self.s):
            return self.s.execute(select(User).where(User.email == email)).scalars().first()


class TodoRepository:
    def __init__(self, session: Session):
        self.s = session

    def list(self, user_id: str, limit: int = DEFAULT_LIMIT, offset: int = 0) -> list[Todo]:
        q = (
            select(Todo)
            .where(Todo.user_id == user_id)
            .order_by(Todo.id.asc())
            .limit(limit)
            .offset(offset)
        )
        with _store_errors(self.s):
            return list(self.s.execute(q).scalars().all())

    def create(
        self,
        user_id: str,
        title: str,
        description: str | None = None,
        is_completed: bool | None = None,
    ) -> Todo:
        todo_id = new_id()
        t = Todo(
            id=todo_id,
            user_id=user_id,
            title=title,
            description=description,
            is_completed=bool(is_completed) if is_completed is not None else False,
        )
        with _store_errors(self.s, "Todo already exists"):
            self.s.add(t)
            self.s.commit()
        # read back for server-assigned timestamps
        return self.get(user_id, todo_id)

    def get(self, user_id: str, todo_id: str) -> Todo:
        q = select(Todo).where(Todo.id == todo_id, Todo.user_id == user_id)
        with _store_errors(self.s):
            t = self.s.execute(q).scalars().first()
        if t is None:
            raise NotFoundError(f"Todo with ID: {todo_id} not found")
        return t

    def update(self, user_id: str, todo_id: str, **fields) -> Todo:
        """Merge ``fields`` into the stored todo and return the written row.

        Fields not supplied keep their stored value. ``description`` may be
        set to ``None`` explicitly; ``title`` and ``is_completed`` ignore
        ``None``.
        """
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise TypeError(f"unexpected fields: {sorted(unknown)}")

        t = self.get(user_id, todo_id)
        for name, value in fields.items():
            if value is None and name in _NON_NULLABLE:
                continue
            setattr(t, name, value)
        t.is_completed = bool(t.is_completed)
        t.updated_at = func.now()

        with _store_errors(self.s):
            self.s.add(t)
            self.s.commit()
        return self.get(user_id, todo_id)

    def delete(self, user_id: str, todo_id: str) -> None:
        with _store_errors(self.s):
            result = self.s.execute(delete(Todo).where(Todo.id == todo_id, Todo.user_id == user_id))
            self.s.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Todo with ID: {todo_id} not found")
