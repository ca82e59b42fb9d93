"""Unit tests for SqlUserRepository with a mock async session_factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from userhub.domain.user.user import User, UserFilter
from userhub.foundation.domain.exceptions import DuplicateEmailError, TransientStoreError
from userhub.infra.persistence.user_repository import EMAIL_INDEX_NAME, SqlUserRepository

_T0 = datetime(2024, 1, 1, tzinfo=UTC)
_T1 = datetime(2024, 1, 2, tzinfo=UTC)


def _row(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": "u-1",
        "first_name": "Dylan",
        "last_name": "Thomas",
        "nickname": "",
        "email": "dylan@example.com",
        "country": "UK",
        "created_at": _T0,
        "updated_at": _T1,
    }
    row.update(overrides)
    return row


def _user() -> User:
    return User(
        id="u-1",
        first_name="Dylan",
        last_name="Thomas",
        email="dylan@example.com",
        country="UK",
        created_at=_T0,
        updated_at=_T0,
    )


def _make_session_factory(
    *,
    one: dict[str, Any] | None = None,
    many: list[dict[str, Any]] | None = None,
    rowcount: int = 1,
    scalar: Any = None,
    execute_error: Exception | None = None,
) -> tuple[Any, AsyncMock]:
    """Create a mock session_factory returning an async-context-managed session."""
    result = MagicMock()
    result.mappings.return_value.one_or_none.return_value = one
    result.mappings.return_value.all.return_value = many or []
    result.rowcount = rowcount

    session = AsyncMock()
    session.execute.return_value = result
    if execute_error is not None:
        session.execute.side_effect = execute_error
    session.scalar.return_value = scalar

    @asynccontextmanager
    async def factory():  # type: ignore[no-untyped-def]
        yield session

    return factory, session


def _sql(session: AsyncMock, call: int = -1) -> str:
    return str(session.execute.call_args_list[call].args[0])


@pytest.mark.unit
class TestCreate:
    @pytest.mark.asyncio
    async def test_inserts_row_with_hash_and_commits(self) -> None:
        factory, session = _make_session_factory()
        repo = SqlUserRepository(factory)

        await repo.create(_user(), "$2b$04$hash")

        assert "INSERT INTO users" in _sql(session)
        params = session.execute.call_args.args[1]
        assert params["password_hash"] == "$2b$04$hash"
        assert params["created_at"] == _T0
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unique_index_violation_is_duplicate_email(self) -> None:
        orig = Exception(f'duplicate key value violates unique constraint "{EMAIL_INDEX_NAME}"')
        factory, _ = _make_session_factory(
            execute_error=IntegrityError("INSERT", {}, orig),
        )
        repo = SqlUserRepository(factory)

        with pytest.raises(DuplicateEmailError) as exc_info:
            await repo.create(_user(), "hash")
        assert exc_info.value.email == "dylan@example.com"

    @pytest.mark.asyncio
    async def test_other_integrity_errors_propagate(self) -> None:
        orig = Exception('duplicate key value violates unique constraint "users_pkey"')
        factory, _ = _make_session_factory(
            execute_error=IntegrityError("INSERT", {}, orig),
        )
        repo = SqlUserRepository(factory)

        with pytest.raises(IntegrityError):
            await repo.create(_user(), "hash")


@pytest.mark.unit
class TestUpdate:
    @pytest.mark.asyncio
    async def test_returns_stored_record(self) -> None:
        factory, session = _make_session_factory(one=_row())
        repo = SqlUserRepository(factory)

        stored = await repo.update(_user())

        assert stored is not None
        assert stored.updated_at == _T1
        assert stored.created_at == _T0
        sql = _sql(session)
        assert "RETURNING" in sql
        assert "created_at =" not in sql
        assert "updated_at = GREATEST(created_at, updated_at, :updated_at)" in sql
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_hash_leaves_credential_column(self) -> None:
        factory, session = _make_session_factory(one=_row())
        await SqlUserRepository(factory).update(_user())

        assert "password_hash" not in _sql(session)
        assert "password_hash" not in session.execute.call_args.args[1]

    @pytest.mark.asyncio
    async def test_with_hash_writes_credential_column(self) -> None:
        factory, session = _make_session_factory(one=_row())
        await SqlUserRepository(factory).update(_user(), "new-hash")

        assert "password_hash = :password_hash" in _sql(session)
        assert session.execute.call_args.args[1]["password_hash"] == "new-hash"

    @pytest.mark.asyncio
    async def test_unknown_id_returns_none(self) -> None:
        factory, _ = _make_session_factory(one=None)
        assert await SqlUserRepository(factory).update(_user()) is None


@pytest.mark.unit
class TestDeleteAndGet:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(("rowcount", "expected"), [(1, True), (0, False)])
    async def test_delete_reports_whether_a_row_matched(
        self, rowcount: int, expected: bool
    ) -> None:
        factory, _ = _make_session_factory(rowcount=rowcount)
        assert await SqlUserRepository(factory).delete_by_id("u-1") is expected

    @pytest.mark.asyncio
    async def test_get_never_selects_credential(self) -> None:
        factory, session = _make_session_factory(one=_row())

        user = await SqlUserRepository(factory).get_by_id("u-1")

        assert user is not None
        assert user.email == "dylan@example.com"
        assert "password_hash" not in _sql(session)

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        factory, _ = _make_session_factory(one=None)
        assert await SqlUserRepository(factory).get_by_id("nope") is None


@pytest.mark.unit
class TestListUsers:
    @pytest.mark.asyncio
    async def test_builds_anded_equality_filter_and_window(self) -> None:
        factory, session = _make_session_factory(many=[_row(), _row(id="u-2")], scalar=3)
        repo = SqlUserRepository(factory)

        users, total = await repo.list_users(
            UserFilter(first_name="Dylan", country="UK", page=2, page_size=2)
        )

        assert total == 3
        assert [u.id for u in users] == ["u-1", "u-2"]
        count_sql = str(session.scalar.call_args.args[0])
        assert "first_name = :first_name AND country = :country" in count_sql
        page_params = session.execute.call_args.args[1]
        assert page_params["skip"] == 2
        assert page_params["limit"] == 2
        assert "ORDER BY created_at, id" in _sql(session)

    @pytest.mark.asyncio
    async def test_no_criteria_has_no_where_clause(self) -> None:
        factory, session = _make_session_factory(scalar=0)

        users, total = await SqlUserRepository(factory).list_users(UserFilter())

        assert (users, total) == ([], 0)
        assert "WHERE" not in str(session.scalar.call_args.args[0])


@pytest.mark.unit
class TestExistsByEmail:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("found", [True, False])
    async def test_returns_flag(self, found: bool) -> None:
        factory, _ = _make_session_factory(scalar=found)
        assert await SqlUserRepository(factory).exists_by_email("a@b.c") is found


@pytest.mark.unit
class TestErrorTranslation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            OperationalError("SELECT", {}, Exception("connection refused")),
            DBAPIError("SELECT", {}, Exception("server closed"), connection_invalidated=True),
            PoolTimeoutError("QueuePool limit reached"),
            TimeoutError(),
        ],
    )
    async def test_connectivity_failures_are_transient(self, error: Exception) -> None:
        factory, _ = _make_session_factory(execute_error=error)

        with pytest.raises(TransientStoreError) as exc_info:
            await SqlUserRepository(factory).get_by_id("u-1")
        assert exc_info.value.operation == "get_by_id"
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_other_dbapi_errors_propagate(self) -> None:
        error = DBAPIError("SELECT", {}, Exception("syntax error"))
        factory, _ = _make_session_factory(execute_error=error)

        with pytest.raises(DBAPIError):
            await SqlUserRepository(factory).get_by_id("u-1")


@pytest.mark.unit
class TestEnsureTableExists:
    @pytest.mark.asyncio
    async def test_creates_table_and_unique_email_index(self) -> None:
        conn = AsyncMock()

        @asynccontextmanager
        async def _begin():  # type: ignore[no-untyped-def]
            yield conn

        engine = MagicMock()
        engine.begin = _begin

        await SqlUserRepository.ensure_table_exists(engine)

        statements = [str(c.args[0]) for c in conn.execute.call_args_list]
        assert any("CREATE TABLE IF NOT EXISTS users" in s for s in statements)
        assert any(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {EMAIL_INDEX_NAME} ON users (email)" in s
            for s in statements
        )
