"""Testes para SessionStore baseado em Redis (cliente mockado)."""

from __future__ import annotations

import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from pos_handoff.domain.protocols.session_store import SessionQuery
from pos_handoff.domain.session import SessionStatus
from pos_handoff.infra.session_contract import SessionStoreError
from pos_handoff.infra.session_store_redis import (
    EXPIRY_INDEX_KEY,
    OFFICER_INDEX_PREFIX,
    USER_INDEX_PREFIX,
    RedisSessionStore,
)


class TestRedisCreate:
    def _pipe(self, mock_redis: MagicMock, exists: int = 0) -> MagicMock:
        pipe = MagicMock()
        pipe.exists.return_value = exists
        mock_redis.pipeline.return_value = pipe
        return pipe

    def test_create_writes_document_and_indexes_in_one_transaction(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis)
        session = make_session(loan_officer_id="lo-1")

        RedisSessionStore(mock_redis).create(session)

        pipe.watch.assert_called_once_with("handoff_session:pos_1_abc")
        pipe.multi.assert_called_once()
        args, _ = pipe.set.call_args
        assert args[0] == "handoff_session:pos_1_abc"
        assert json.loads(args[1])["session_id"] == "pos_1_abc"
        pipe.zadd.assert_called_once_with(
            EXPIRY_INDEX_KEY, {"pos_1_abc": session.expires_at.timestamp()}
        )
        pipe.sadd.assert_any_call(f"{USER_INDEX_PREFIX}user-1", "pos_1_abc")
        pipe.sadd.assert_any_call(f"{OFFICER_INDEX_PREFIX}lo-1", "pos_1_abc")
        pipe.execute.assert_called_once()
        pipe.reset.assert_called_once()
        mock_redis.set.assert_not_called()
        mock_redis.zadd.assert_not_called()

    def test_create_duplicate(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis, exists=1)

        with pytest.raises(SessionStoreError, match="already exists"):
            RedisSessionStore(mock_redis).create(make_session())
        pipe.multi.assert_not_called()
        pipe.execute.assert_not_called()

    def test_create_race_on_same_key(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis)
        pipe.execute.side_effect = WatchError()

        with pytest.raises(SessionStoreError, match="already exists"):
            RedisSessionStore(mock_redis).create(make_session())
        pipe.reset.assert_called_once()

    def test_index_failure_leaves_nothing_behind(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis)
        pipe.zadd.side_effect = RedisConnectionError("down")

        with pytest.raises(SessionStoreError):
            RedisSessionStore(mock_redis).create(make_session())

        pipe.execute.assert_not_called()
        pipe.reset.assert_called_once()
        mock_redis.set.assert_not_called()

    def test_create_backend_error(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis)
        pipe.execute.side_effect = RedisConnectionError("down")
        with pytest.raises(SessionStoreError, match="create failed"):
            RedisSessionStore(mock_redis).create(make_session())


class TestRedisLoad:
    def test_load_existing(self, make_session) -> None:
        session = make_session()
        mock_redis = MagicMock()
        mock_redis.get.return_value = session.model_dump_json().encode("utf-8")

        assert RedisSessionStore(mock_redis).load("pos_1_abc") == session
        mock_redis.get.assert_called_once_with("handoff_session:pos_1_abc")

    def test_load_missing(self) -> None:
        mock_redis = MagicMock()
        mock_redis.get.return_value = None
        assert RedisSessionStore(mock_redis).load("nope") is None

    def test_load_error(self) -> None:
        mock_redis = MagicMock()
        mock_redis.get.side_effect = RedisConnectionError("down")
        with pytest.raises(SessionStoreError):
            RedisSessionStore(mock_redis).load("pos_1_abc")


class TestRedisCompareAndSet:
    def _pipe(self, mock_redis: MagicMock, current) -> MagicMock:
        pipe = MagicMock()
        pipe.get.return_value = current.model_dump_json() if current else None
        mock_redis.pipeline.return_value = pipe
        return pipe

    def test_success_reindexes_non_terminal(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis, make_session())
        updated = make_session(status=SessionStatus.ACTIVE, version=1)

        assert RedisSessionStore(mock_redis).compare_and_set(updated, expected_version=0)

        pipe.watch.assert_called_once_with("handoff_session:pos_1_abc")
        pipe.multi.assert_called_once()
        pipe.set.assert_called_once()
        pipe.zadd.assert_called_once()
        pipe.execute.assert_called_once()
        pipe.reset.assert_called_once()

    def test_terminal_removed_from_expiry_index(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis, make_session())
        updated = make_session(status=SessionStatus.COMPLETED, version=1)

        RedisSessionStore(mock_redis).compare_and_set(updated, expected_version=0)

        pipe.zrem.assert_called_once_with(EXPIRY_INDEX_KEY, "pos_1_abc")
        pipe.zadd.assert_not_called()

    def test_version_mismatch(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis, make_session(version=3))

        assert not RedisSessionStore(mock_redis).compare_and_set(make_session(), expected_version=1)
        pipe.multi.assert_not_called()
        pipe.reset.assert_called_once()

    def test_watch_error_is_conflict(self, make_session) -> None:
        mock_redis = MagicMock()
        pipe = self._pipe(mock_redis, make_session())
        pipe.execute.side_effect = WatchError()

        assert not RedisSessionStore(mock_redis).compare_and_set(
            make_session(version=1), expected_version=0
        )

    def test_missing_session(self, make_session) -> None:
        mock_redis = MagicMock()
        self._pipe(mock_redis, None)
        with pytest.raises(SessionStoreError, match="not found"):
            RedisSessionStore(mock_redis).compare_and_set(make_session(), expected_version=0)


class TestRedisQueries:
    def test_find_expirable(self, make_session, clock) -> None:
        due = make_session("pos_1_due", expires_at=clock.now - timedelta(seconds=1))
        mock_redis = MagicMock()
        mock_redis.zrangebyscore.return_value = ["pos_1_due", "pos_1_gone"]
        mock_redis.mget.return_value = [due.model_dump_json(), None]

        result = RedisSessionStore(mock_redis).find_expirable(clock.now, limit=10)

        assert result == [due]
        mock_redis.zrangebyscore.assert_called_once_with(
            EXPIRY_INDEX_KEY, "-inf", f"({clock.now.timestamp()}", start=0, num=10
        )
        mock_redis.mget.assert_called_once_with(
            ["handoff_session:pos_1_due", "handoff_session:pos_1_gone"]
        )

    def test_list_by_user_index(self, make_session, clock) -> None:
        older = make_session("pos_1_old")
        newer = make_session("pos_1_new", created_at=clock.now + timedelta(seconds=1))
        mock_redis = MagicMock()
        mock_redis.smembers.return_value = {"pos_1_old", "pos_1_new"}
        mock_redis.mget.return_value = [older.model_dump_json(), newer.model_dump_json()]
        store = RedisSessionStore(mock_redis)

        sessions = store.list_sessions(SessionQuery(user_id="user-1"))

        assert [s.session_id for s in sessions] == ["pos_1_new", "pos_1_old"]
        mock_redis.smembers.assert_called_with(f"{USER_INDEX_PREFIX}user-1")

    def test_count_by_officer_index(self, make_session) -> None:
        mock_redis = MagicMock()
        mock_redis.smembers.return_value = {b"pos_1_abc"}
        mock_redis.mget.return_value = [make_session(loan_officer_id="lo-1").model_dump_json()]

        count = RedisSessionStore(mock_redis).count_sessions(SessionQuery(loan_officer_id="lo-1"))

        assert count == 1
        mock_redis.smembers.assert_called_once_with(f"{OFFICER_INDEX_PREFIX}lo-1")

    def test_listing_requires_index(self) -> None:
        with pytest.raises(SessionStoreError):
            RedisSessionStore(MagicMock()).list_sessions(SessionQuery())
