import asyncio

import pytest

from siphandle import RequestTimeoutError, TransactionManager, TransactionState


@pytest.mark.asyncio
async def test_close_with_success_resolves_waiter():
    manager = TransactionManager()
    transaction = manager.create("tx-1", {"body": {"request": "hangup"}})

    waiter = asyncio.create_task(manager.wait(transaction, 1.0))
    await asyncio.sleep(0)
    assert manager.close_with_success("tx-1", "done") is True

    assert await waiter == "done"
    assert transaction.state is TransactionState.SUCCEEDED
    assert "tx-1" not in manager


@pytest.mark.asyncio
async def test_resolution_before_wait_is_kept():
    manager = TransactionManager()
    transaction = manager.create("tx-1")
    manager.close_with_error("tx-1", ValueError("nope"))

    with pytest.raises(ValueError):
        await manager.wait(transaction, 1.0)
    assert transaction.state is TransactionState.FAILED


@pytest.mark.asyncio
async def test_closing_unknown_or_closed_transaction_is_noop():
    manager = TransactionManager()
    manager.create("tx-1")
    manager.close_with_success("tx-1", 1)

    assert manager.close_with_success("tx-1", 2) is False
    assert manager.close_with_error("missing", ValueError()) is False
    assert manager.close_with_success(None, 3) is False


@pytest.mark.asyncio
async def test_timeout_removes_entry():
    manager = TransactionManager()
    transaction = manager.create("tx-1", {"body": {"request": "register"}})

    with pytest.raises(RequestTimeoutError, match="register request timed out"):
        await manager.wait(transaction, 0.01)

    assert transaction.state is TransactionState.TIMED_OUT
    assert len(manager) == 0
    assert manager.close_with_success("tx-1", "late") is False


@pytest.mark.asyncio
async def test_cancelled_waiter_removes_entry():
    manager = TransactionManager()
    transaction = manager.create("tx-1")

    waiter = asyncio.create_task(manager.wait(transaction, 5.0))
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert len(manager) == 0


@pytest.mark.asyncio
async def test_fail_all():
    manager = TransactionManager()
    first = manager.create("a")
    second = manager.create("b")

    assert manager.fail_all(RuntimeError("gone")) == 2
    for transaction in (first, second):
        with pytest.raises(RuntimeError):
            await manager.wait(transaction, 1.0)
