"""Shared pytest fixtures: async test client, fake session, fake Redis."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.database import get_db
from app.main import app
from app.models.devices import Reading


class FakeResult:
	"""Minimal stand-in for a SQLAlchemy ``Result``."""

	def __init__(
		self,
		value: Any = None,
		*,
		items: Iterable[Any] | None = None,
		row: Any = None,
		rows: Iterable[Any] | None = None,
	) -> None:
		self.value = value
		self.items = list(items or [])
		self.row = row
		self.rows = list(rows or [])

	def scalar_one_or_none(self) -> Any:
		return self.value

	def scalar_one(self) -> Any:
		if self.value is None:
			raise LookupError("no scalar queued")
		return self.value

	def scalars(self) -> SimpleNamespace:
		return SimpleNamespace(all=lambda: list(self.items))

	def one(self) -> Any:
		if self.row is None:
			raise LookupError("no row queued")
		return self.row

	def one_or_none(self) -> Any:
		return self.row

	def all(self) -> list[Any]:
		return list(self.rows)


class FakeAsyncSession:
	"""Queue-driven session stub: each ``execute`` pops the next queued result."""

	def __init__(self, results: Iterable[FakeResult] | None = None) -> None:
		self.results = list(results or [])
		self.executed: list[Any] = []
		self.added: list[Any] = []
		self.deleted: list[Any] = []
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.flush = AsyncMock(side_effect=self._flush)
		self._next_reading_id = 1

	def queue(self, *results: FakeResult) -> None:
		self.results.extend(results)

	async def execute(self, statement: Any) -> FakeResult:
		self.executed.append(statement)
		if not self.results:
			return FakeResult()
		return self.results.pop(0)

	def add(self, obj: Any) -> None:
		self.added.append(obj)

	def add_all(self, objs: Iterable[Any]) -> None:
		self.added.extend(objs)

	async def delete(self, obj: Any) -> None:
		self.deleted.append(obj)

	async def _flush(self) -> None:
		for obj in self.added:
			if getattr(obj, "id", None) is not None:
				continue
			if isinstance(obj, Reading):
				obj.id = self._next_reading_id
				self._next_reading_id += 1
			elif hasattr(obj, "id"):
				obj.id = uuid.uuid4()


class FakeRedis:
	def __init__(self) -> None:
		self.store: dict[str, str] = {}
		self.get = AsyncMock(side_effect=self._get)
		self.setex = AsyncMock(side_effect=self._setex)
		self.delete = AsyncMock(side_effect=self._delete)
		self.ping = AsyncMock(return_value=True)
		self._counter: dict[str, int] = {}
		self.incr = AsyncMock(side_effect=self._incr)
		self.expire = AsyncMock(return_value=True)

	async def _get(self, key: str) -> str | None:
		return self.store.get(key)

	async def _setex(self, key: str, _ttl: int, value: str) -> bool:
		self.store[key] = value
		return True

	async def _delete(self, key: str) -> int:
		return 1 if self.store.pop(key, None) is not None else 0

	async def _incr(self, key: str) -> int:
		value = self._counter.get(key, 0) + 1
		self._counter[key] = value
		return value


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	return FakeRedis()


@pytest.fixture
async def client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled and DB dependency mocked."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	app.dependency_overrides[get_db] = override_get_db
	original_lifespan = app.router.lifespan_context

	@asynccontextmanager
	async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
		yield

	app.router.lifespan_context = noop_lifespan

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()
	if hasattr(app.state, "redis"):
		del app.state.redis
