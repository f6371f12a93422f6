from unittest.mock import AsyncMock, MagicMock

import pytest

from watchtrack.transaction import TransactionHelper


def _helper():
    session = MagicMock()
    session.begin = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    factory = MagicMock(return_value=session)
    return TransactionHelper(factory), session


async def test_commits_and_returns_work_result():
    helper, session = _helper()
    work = AsyncMock(return_value=42)

    assert await helper.execute_in_transaction(work) == 42

    work.assert_awaited_once_with(session)
    session.begin.assert_awaited_once()
    session.commit.assert_awaited_once()
    session.rollback.assert_not_awaited()
    session.close.assert_awaited_once()


async def test_rolls_back_and_reraises_original_error():
    helper, session = _helper()
    work = AsyncMock(side_effect=RuntimeError("statement failed"))

    with pytest.raises(RuntimeError, match="statement failed"):
        await helper.execute_in_transaction(work)

    session.commit.assert_not_awaited()
    session.rollback.assert_awaited_once()
    session.close.assert_awaited_once()


async def test_rollback_failure_wins_and_session_still_closed():
    helper, session = _helper()
    session.rollback.side_effect = ConnectionError("connection lost")
    work = AsyncMock(side_effect=RuntimeError("statement failed"))

    with pytest.raises(ConnectionError) as exc_info:
        await helper.execute_in_transaction(work)

    assert isinstance(exc_info.value.__context__, RuntimeError)
    session.close.assert_awaited_once()


async def test_commit_failure_rolls_back():
    helper, session = _helper()
    session.commit.side_effect = RuntimeError("commit failed")

    with pytest.raises(RuntimeError, match="commit failed"):
        await helper.execute_in_transaction(AsyncMock(return_value=None))

    session.rollback.assert_awaited_once()
    session.close.assert_awaited_once()


async def test_no_retries():
    helper, session = _helper()
    work = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await helper.execute_in_transaction(work)

    assert work.await_count == 1
