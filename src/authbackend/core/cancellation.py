"""通信ステップを呼び出し元の中断・タイムアウトと競合させるガード."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from authbackend.errors import create_cancelled_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
    step: str = "request",
) -> T:
    """awaitable を実行し、中断イベントかタイムアウトが先に来たら Cancelled を送出する.

    中断時は実行中のタスクをキャンセルし、その終了を待ってから送出する。
    呼び出し側タスク自体がキャンセルされた場合は asyncio.CancelledError をそのまま伝播する。

    Args:
        awaitable: 通信ステップ
        cancel_event: セットされると中断する
        timeout: 待機上限秒数
        step: ログとエラー詳細に使うステップ名
    """
    if cancel_event is None and timeout is None:
        return await awaitable

    if cancel_event is not None and cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise create_cancelled_error(
            f"{step} は開始前に中断されました", details={"step": step}
        )

    task = asyncio.ensure_future(awaitable)
    waiter: Optional[asyncio.Task] = None
    waiting = {task}
    if cancel_event is not None:
        waiter = asyncio.ensure_future(cancel_event.wait())
        waiting.add(waiter)

    try:
        done, _ = await asyncio.wait(
            waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        await _cancel_and_wait(task)
        raise
    finally:
        if waiter is not None and not waiter.done():
            waiter.cancel()

    if task in done:
        return task.result()

    await _cancel_and_wait(task)
    reason = "cancelled" if waiter is not None and waiter in done else "timeout"
    logger.info("Aborted %s (%s)", step, reason)
    raise create_cancelled_error(
        f"{step} は中断されました ({reason})",
        details={"step": step, "reason": reason},
    )


async def _cancel_and_wait(task: asyncio.Future) -> None:
    if task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
