from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from app.application.dto.users import UserListQuery, UserMatch, UserPage
from app.application.ports.user_port import UserPort
from app.domain.entities.user import User
from app.domain.exceptions import UniqueConstraintError
from app.infrastructure.db.mappers.users_mapper import map_row_to_user
from app.infrastructure.db.models.users import users_table as users


logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _select_by_match(match: UserMatch):
    conditions = [func.lower(users.c.email) == match.email.lower()]
    stmt = select(users)
    if match.google_id:
        conditions.append(users.c.google_id == match.google_id)
        # Prefer the row already linked to this google_id.
        stmt = stmt.order_by(case((users.c.google_id == match.google_id, 0), else_=1))
    return stmt.where(or_(*conditions)).limit(1)


def _select_by_id(user_id: str):
    return select(users).where(users.c.id == user_id).limit(1)


class SqlUsersRepository(UserPort):
    def __init__(self, engine):
        self._engine = engine

    def get_user_by_id(self, *, user_id: str) -> User | None:
        with self._engine.connect() as conn:
            row = conn.execute(_select_by_id(user_id)).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def find_user_by_email_or_google_id(self, *, match: UserMatch) -> User | None:
        with self._engine.connect() as conn:
            row = conn.execute(_select_by_match(match)).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def upsert_user(
        self,
        *,
        match: UserMatch,
        insert_only: Mapping[str, Any],
        always_set: Mapping[str, Any],
        fill_missing: Mapping[str, Any],
    ) -> User:
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(_select_by_match(match).with_for_update()).mappings().first()
                if existing is None:
                    values = {**fill_missing, **insert_only, **always_set}
                    conn.execute(insert(users).values(**values))
                    user_id = values["id"]
                else:
                    user_id = existing["id"]
                    values = dict(always_set)
                    for column, value in fill_missing.items():
                        if value is not None:
                            values[column] = func.coalesce(users.c[column], value)
                    conn.execute(update(users).where(users.c.id == user_id).values(**values))
                row = conn.execute(_select_by_id(user_id)).mappings().one()
        except IntegrityError as exc:
            logger.warning("users_repository: upsert_conflict email=%s", match.email)
            raise UniqueConstraintError("A user with this email or Google ID already exists.") from exc
        return map_row_to_user(row)

    def update_user_fields(self, *, user_id: str, fields: Mapping[str, Any], now: datetime) -> User | None:
        stmt = (
            update(users)
            .where(users.c.id == user_id, users.c.is_deleted.is_(False))
            .values(**fields, updated_at=now)
        )
        try:
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
                if result.rowcount == 0:
                    return None
                row = conn.execute(_select_by_id(user_id)).mappings().one()
        except IntegrityError as exc:
            raise UniqueConstraintError("Email already exists.") from exc
        return map_row_to_user(row)

    def update_last_login(self, *, user_id: str, last_login: datetime) -> User | None:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(users).where(users.c.id == user_id).values(last_login=last_login)
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(_select_by_id(user_id)).mappings().one()
        return map_row_to_user(row)

    def soft_delete_user(self, *, user_id: str, now: datetime) -> bool:
        stmt = (
            update(users)
            .where(users.c.id == user_id, users.c.is_deleted.is_(False))
            .values(is_deleted=True, updated_at=now)
        )
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0

    def list_users(self, *, query: UserListQuery) -> UserPage:
        conditions = [users.c.is_deleted.is_(False)]
        if query.search:
            pattern = f"%{_escape_like(query.search.lower())}%"
            conditions.append(
                or_(
                    func.lower(users.c.name).like(pattern, escape="\\"),
                    func.lower(users.c.email).like(pattern, escape="\\"),
                )
            )

        count_stmt = select(func.count()).select_from(users).where(*conditions)
        page_stmt = (
            select(users)
            .where(*conditions)
            .order_by(users.c.created_at.desc(), users.c.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        with self._engine.connect() as conn:
            total = conn.execute(count_stmt).scalar_one()
            rows = conn.execute(page_stmt).mappings().all()
        return UserPage(
            users=[map_row_to_user(row) for row in rows],
            total=int(total),
            page=query.page,
            limit=query.limit,
        )
