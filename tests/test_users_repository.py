from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.application.dto.users import UserListQuery, UserMatch
from app.domain.exceptions import UniqueConstraintError
from app.infrastructure.db.engine import create_schema
from app.infrastructure.db.repositories.users_repository import SqlUsersRepository


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository() -> SqlUsersRepository:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    return SqlUsersRepository(engine)


def _upsert(
    repository: SqlUsersRepository,
    *,
    email: str,
    google_id: str | None,
    name: str = "Alice",
    picture: str | None = None,
    now: datetime = BASE_TIME,
    insert_email: str | None = None,
):
    return repository.upsert_user(
        match=UserMatch(email=email, google_id=google_id),
        insert_only={
            "id": str(uuid4()),
            "name": name,
            "email": insert_email or email,
            "auth_provider": "google",
            "role": "user",
            "is_email_verified": True,
            "is_active": True,
            "is_blocked": False,
            "is_deleted": False,
            "created_at": now,
        },
        always_set={"last_login": now, "updated_at": now},
        fill_missing={"google_id": google_id, "profile_picture": picture},
    )


def test_upsert_inserts_then_updates_same_row(repository):
    first = _upsert(repository, email="alice@example.com", google_id="g-1")
    later = BASE_TIME + timedelta(hours=1)
    second = _upsert(repository, email="alice@example.com", google_id="g-1", name="Renamed", now=later)

    assert second.id == first.id
    assert second.name == "Alice"
    assert second.last_login == later
    assert second.created_at == BASE_TIME
    assert repository.list_users(query=UserListQuery(page=1, limit=10, search=None)).total == 1


def test_upsert_backfills_missing_google_id_and_picture(repository):
    email_only = _upsert(repository, email="old@x.com", google_id=None)
    assert email_only.google_id is None

    linked = _upsert(
        repository,
        email="old@x.com",
        google_id="g-2",
        picture="https://lh3.googleusercontent.com/a/photo",
    )

    assert linked.id == email_only.id
    assert linked.google_id == "g-2"
    assert linked.profile_picture == "https://lh3.googleusercontent.com/a/photo"


def test_upsert_does_not_overwrite_existing_google_id(repository):
    original = _upsert(repository, email="alice@example.com", google_id="g-1", picture="https://a/1.png")

    again = _upsert(repository, email="alice@example.com", google_id="g-1", picture="https://a/2.png")

    assert again.id == original.id
    assert again.profile_picture == "https://a/1.png"


def test_upsert_prefers_google_id_match(repository):
    by_google = _upsert(repository, email="first@example.com", google_id="g-1")
    _upsert(repository, email="second@example.com", google_id="g-2")

    matched = _upsert(repository, email="second@example.com", google_id="g-1")

    assert matched.id == by_google.id


def test_insert_conflict_is_reported_as_unique_constraint(repository):
    _upsert(repository, email="taken@example.com", google_id="g-1")

    with pytest.raises(UniqueConstraintError):
        _upsert(repository, email="free@example.com", google_id="g-9", insert_email="taken@example.com")


def test_find_by_email_or_google_id(repository):
    user = _upsert(repository, email="alice@example.com", google_id="g-1")

    assert repository.find_user_by_email_or_google_id(
        match=UserMatch(email="ALICE@example.com", google_id=None)
    ).id == user.id
    assert repository.find_user_by_email_or_google_id(
        match=UserMatch(email="nobody@example.com", google_id="g-1")
    ).id == user.id
    assert repository.find_user_by_email_or_google_id(
        match=UserMatch(email="nobody@example.com", google_id="g-404")
    ) is None


def test_update_user_fields_and_duplicate_email(repository):
    alice = _upsert(repository, email="alice@example.com", google_id="g-1")
    _upsert(repository, email="bob@example.com", google_id="g-2")
    later = BASE_TIME + timedelta(minutes=5)

    updated = repository.update_user_fields(user_id=alice.id, fields={"role": "admin"}, now=later)
    assert updated.role == "admin"
    assert updated.updated_at == later

    with pytest.raises(UniqueConstraintError):
        repository.update_user_fields(user_id=alice.id, fields={"email": "bob@example.com"}, now=later)


def test_soft_deleted_users_are_hidden_from_updates_and_listing(repository):
    alice = _upsert(repository, email="alice@example.com", google_id="g-1")

    assert repository.soft_delete_user(user_id=alice.id, now=BASE_TIME) is True
    assert repository.soft_delete_user(user_id=alice.id, now=BASE_TIME) is False
    assert repository.update_user_fields(user_id=alice.id, fields={"name": "X"}, now=BASE_TIME) is None
    assert repository.get_user_by_id(user_id=alice.id).is_deleted is True
    assert repository.list_users(query=UserListQuery(page=1, limit=10, search=None)).total == 0


def test_list_users_searches_and_orders_newest_first(repository):
    for offset, (name, email) in enumerate(
        [
            ("Alice Doe", "alice@example.com"),
            ("Bob Roe", "bob@example.com"),
            ("Carol Doe", "carol@example.com"),
        ]
    ):
        _upsert(
            repository,
            email=email,
            google_id=f"g-{offset}",
            name=name,
            now=BASE_TIME + timedelta(minutes=offset),
        )

    page = repository.list_users(query=UserListQuery(page=1, limit=10, search="doe"))
    assert [user.name for user in page.users] == ["Carol Doe", "Alice Doe"]
    assert page.total == 2

    second_page = repository.list_users(query=UserListQuery(page=2, limit=2, search=None))
    assert [user.name for user in second_page.users] == ["Alice Doe"]
    assert second_page.pages == 2


def test_update_last_login(repository):
    alice = _upsert(repository, email="alice@example.com", google_id="g-1")
    later = BASE_TIME + timedelta(days=1)

    assert repository.update_last_login(user_id=alice.id, last_login=later).last_login == later
    assert repository.update_last_login(user_id="ghost", last_login=later) is None
