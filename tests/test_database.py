"""Tests for registry storage setup and commit retries."""
import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from leavebridge.database import build_engine
from leavebridge.utils.db_utils import is_transient_db_error, retry_on_lock


def operational(message):
    return OperationalError("COMMIT", {}, Exception(message))


class TestBuildEngine:

    @pytest.mark.asyncio
    async def test_sqlite_connections_use_wal(self, tmp_path):
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
        try:
            async with engine.connect() as conn:
                mode = (await conn.execute(text("PRAGMA journal_mode"))).scalar()
                timeout = (await conn.execute(text("PRAGMA busy_timeout"))).scalar()
        finally:
            await engine.dispose()
        assert mode == "wal"
        assert timeout == 30000


class TestRetryOnLock:

    def test_transient_classification(self):
        assert is_transient_db_error(operational("database is locked"))
        assert is_transient_db_error(operational("Connection reset by peer"))
        assert not is_transient_db_error(operational("no such table: device_registrations"))
        assert not is_transient_db_error(IntegrityError("INSERT", {}, Exception("database is locked")))

    @pytest.mark.asyncio
    async def test_retries_until_commit_succeeds(self):
        attempts = []

        async def commit():
            attempts.append(1)
            if len(attempts) < 3:
                raise operational("database is locked")
            return "ok"

        assert await retry_on_lock(commit, base_delay=0) == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        async def commit():
            raise operational("database is locked")

        with pytest.raises(OperationalError):
            await retry_on_lock(commit, max_retries=2, base_delay=0)

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        attempts = []

        async def commit():
            attempts.append(1)
            raise operational("disk I/O error")

        with pytest.raises(OperationalError):
            await retry_on_lock(commit, base_delay=0)
        assert attempts == [1]
