from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, func, select

from app.application.dto.auth import FederatedIdentityInput
from app.application.dto.users import UserMatch
from app.application.use_cases.reconcile_google_identity import (
    FALLBACK_DISPLAY_NAME,
    ReconcileGoogleIdentityUseCase,
)
from app.domain.entities.user import User
from app.domain.exceptions import (
    MissingEmailError,
    MissingIdentityError,
    UniqueConstraintError,
    UnverifiedEmailError,
)
from app.infrastructure.db.engine import create_schema
from app.infrastructure.db.models.users import users_table
from app.infrastructure.db.repositories.users_repository import SqlUsersRepository


class InMemoryUserPort:
    """Upsert semantics of the SQL repository, serialized by a lock."""

    def __init__(self):
        self.users: dict[str, User] = {}
        self.upsert_calls = 0
        self._lock = threading.Lock()

    def add(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def _find(self, match: UserMatch) -> User | None:
        if match.google_id:
            for user in self.users.values():
                if user.google_id == match.google_id:
                    return user
        for user in self.users.values():
            if user.email == match.email.lower():
                return user
        return None

    def get_user_by_id(self, *, user_id: str) -> User | None:
        return self.users.get(user_id)

    def find_user_by_email_or_google_id(self, *, match: UserMatch) -> User | None:
        with self._lock:
            return self._find(match)

    def upsert_user(self, *, match, insert_only, always_set, fill_missing) -> User:
        with self._lock:
            self.upsert_calls += 1
            existing = self._find(match)
            if existing is None:
                user = User(**{**fill_missing, **insert_only, **always_set})
            else:
                changes = dict(always_set)
                for field, value in fill_missing.items():
                    if value is not None and getattr(existing, field) is None:
                        changes[field] = value
                user = replace(existing, **changes)
            self.users[user.id] = user
            return user

    def update_last_login(self, *, user_id: str, last_login: datetime) -> User | None:
        with self._lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            user = replace(user, last_login=last_login)
            self.users[user_id] = user
            return user


class LosingRaceUserPort(InMemoryUserPort):
    """A competing callback commits the row between lookup and insert."""

    def upsert_user(self, *, match, insert_only, always_set, fill_missing) -> User:
        self.upsert_calls += 1
        competitor = User(
            **{
                **fill_missing,
                **insert_only,
                **always_set,
                "id": "competitor-id",
                "last_login": None,
            }
        )
        self.add(competitor)
        raise UniqueConstraintError("duplicate key value violates unique constraint")


class VanishingRowUserPort(InMemoryUserPort):
    def upsert_user(self, *, match, insert_only, always_set, fill_missing) -> User:
        raise UniqueConstraintError("duplicate key value violates unique constraint")


def _existing_user(**overrides) -> User:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    values = dict(
        id="existing-id",
        name="Old Name",
        email="old@x.com",
        google_id=None,
        profile_picture=None,
        auth_provider="google",
        role="doctor",
        is_email_verified=True,
        is_active=True,
        is_blocked=False,
        is_deleted=False,
        last_login=None,
        created_at=created,
        updated_at=created,
    )
    values.update(overrides)
    return User(**values)


def _identity(**overrides) -> FederatedIdentityInput:
    values = dict(
        provider_id="g-1",
        email="new@x.com",
        display_name="New Person",
        picture_url="https://lh3.googleusercontent.com/a/photo",
    )
    values.update(overrides)
    return FederatedIdentityInput(**values)


def test_fresh_identity_creates_user_with_defaults():
    port = InMemoryUserPort()
    use_case = ReconcileGoogleIdentityUseCase(user_port=port)

    user = use_case.execute(_identity())

    assert len(port.users) == 1
    assert user.role == "user"
    assert user.is_email_verified is True
    assert user.is_active is True
    assert user.is_blocked is False
    assert user.is_deleted is False
    assert user.auth_provider == "google"
    assert user.google_id == "g-1"
    assert user.profile_picture == "https://lh3.googleusercontent.com/a/photo"
    assert user.last_login is not None


def test_missing_display_name_falls_back():
    port = InMemoryUserPort()

    user = ReconcileGoogleIdentityUseCase(user_port=port).execute(_identity(display_name="  "))

    assert user.name == FALLBACK_DISPLAY_NAME


def test_links_google_id_to_existing_email_only_user():
    port = InMemoryUserPort()
    port.add(_existing_user())

    user = ReconcileGoogleIdentityUseCase(user_port=port).execute(
        _identity(provider_id="g-2", email="old@x.com", display_name="Someone Else")
    )

    assert user.id == "existing-id"
    assert user.google_id == "g-2"
    assert user.name == "Old Name"
    assert user.role == "doctor"
    assert user.last_login is not None
    assert len(port.users) == 1


def test_email_lookup_is_case_insensitive():
    port = InMemoryUserPort()
    port.add(_existing_user(google_id="g-2"))

    user = ReconcileGoogleIdentityUseCase(user_port=port).execute(
        _identity(provider_id="g-2", email="  OLD@X.com ")
    )

    assert user.id == "existing-id"
    assert len(port.users) == 1


def test_existing_picture_is_not_overwritten():
    port = InMemoryUserPort()
    port.add(_existing_user(google_id="g-2", profile_picture="https://cdn.example.com/me.png"))

    user = ReconcileGoogleIdentityUseCase(user_port=port).execute(
        _identity(provider_id="g-2", email="old@x.com")
    )

    assert user.profile_picture == "https://cdn.example.com/me.png"


def test_missing_email_is_rejected_before_storage():
    port = InMemoryUserPort()

    with pytest.raises(MissingEmailError):
        ReconcileGoogleIdentityUseCase(user_port=port).execute(_identity(email=None))

    assert port.upsert_calls == 0


def test_missing_provider_id_is_rejected_before_storage():
    port = InMemoryUserPort()

    with pytest.raises(MissingIdentityError):
        ReconcileGoogleIdentityUseCase(user_port=port).execute(_identity(provider_id=""))

    assert port.upsert_calls == 0


def test_unverified_email_is_rejected_before_storage():
    port = InMemoryUserPort()
    port.add(_existing_user())

    with pytest.raises(UnverifiedEmailError) as exc_info:
        ReconcileGoogleIdentityUseCase(user_port=port).execute(
            _identity(provider_id="g-attacker", email="old@x.com", email_verified=False)
        )

    assert exc_info.value.error_code == "auth_failed"
    assert port.upsert_calls == 0
    assert port.users["existing-id"].google_id is None


def test_lost_insert_race_returns_winning_row():
    port = LosingRaceUserPort()

    user = ReconcileGoogleIdentityUseCase(user_port=port).execute(_identity())

    assert user.id == "competitor-id"
    assert user.last_login is not None
    assert len(port.users) == 1


def test_conflict_without_visible_row_propagates():
    port = VanishingRowUserPort()

    with pytest.raises(UniqueConstraintError):
        ReconcileGoogleIdentityUseCase(user_port=port).execute(_identity())


def test_concurrent_callbacks_converge_to_one_user():
    port = InMemoryUserPort()
    use_case = ReconcileGoogleIdentityUseCase(user_port=port)
    barrier = threading.Barrier(8)
    results: list[str] = []
    results_lock = threading.Lock()

    def _callback():
        barrier.wait()
        user = use_case.execute(_identity())
        with results_lock:
            results.append(user.id)

    threads = [threading.Thread(target=_callback) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8
    assert len(set(results)) == 1
    assert len(port.users) == 1


def test_concurrent_callbacks_share_one_row_in_sql_storage(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'users.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    create_schema(engine)
    use_case = ReconcileGoogleIdentityUseCase(user_port=SqlUsersRepository(engine))
    barrier = threading.Barrier(8)
    results: list[str] = []
    errors: list[Exception] = []
    results_lock = threading.Lock()

    def _callback():
        barrier.wait()
        try:
            user = use_case.execute(_identity())
        except Exception as exc:  # noqa: BLE001
            with results_lock:
                errors.append(exc)
            return
        with results_lock:
            results.append(user.id)

    threads = [threading.Thread(target=_callback) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    with engine.connect() as conn:
        row_count = conn.execute(select(func.count()).select_from(users_table)).scalar_one()
    engine.dispose()

    assert errors == []
    assert len(results) == 8
    assert len(set(results)) == 1
    assert row_count == 1
