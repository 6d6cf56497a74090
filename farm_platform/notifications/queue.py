"""
通知分发队列

有界队列 + 固定数量的工作协程。submit() 从不阻塞调用方，队列满时直接拒绝；
每个事件只投递一次，不做重试。stop() 默认等待队列中和进行中的事件处理完毕。
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .orchestrator import EventInput, NotificationOrchestrator


logger = logging.getLogger(__name__)

_STOP = object()


class NotificationDispatchQueue:
    """通知分发队列"""

    def __init__(self, orchestrator: NotificationOrchestrator, max_size: int = 1000,
                 worker_count: int = 2):
        self.orchestrator = orchestrator
        self.max_size = max_size
        self.worker_count = worker_count
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._running = False
        self._stats = {
            'enqueued': 0,
            'processed': 0,
            'failed': 0,
            'rejected': 0,
        }

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """启动工作协程"""
        if self._running:
            logger.warning("通知分发队列已在运行")
            return

        # 哨兵不占用业务容量
        self._queue = asyncio.Queue(maxsize=self.max_size + self.worker_count)
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"notification-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"通知分发队列已启动，工作协程数: {self.worker_count}")

    def submit(self, event: EventInput) -> bool:
        """
        提交通知事件

        Args:
            event: 通知事件

        Returns:
            bool: 是否成功加入队列
        """
        if not self._running:
            logger.warning("通知分发队列未运行，拒绝事件")
            self._stats['rejected'] += 1
            return False

        if self._queue.qsize() >= self.max_size:
            logger.warning("通知分发队列已满，拒绝事件")
            self._stats['rejected'] += 1
            return False

        self._queue.put_nowait(event)
        self._stats['enqueued'] += 1
        return True

    async def _worker(self, index: int) -> None:
        """工作协程主循环"""
        while True:
            event = await self._queue.get()
            try:
                if event is _STOP:
                    return
                await self._process(event)
            finally:
                self._queue.task_done()

    async def _process(self, event: EventInput) -> None:
        try:
            success = await self.orchestrator.notify(event)
        except Exception as e:
            # notify 本身不应抛出异常，这里只是保证工作协程不退出
            logger.error(f"处理通知事件时发生错误: {e}")
            success = False

        if success:
            self._stats['processed'] += 1
        else:
            self._stats['failed'] += 1

    async def stop(self, drain: bool = True) -> None:
        """
        停止队列

        Args:
            drain: True 时等待已入队的事件处理完毕；False 时丢弃尚未开始的事件，进行中的发送仍会完成
        """
        if not self._running:
            return

        self._running = False

        if not drain:
            # 只丢弃尚未开始的事件，进行中的发送仍会写回最终状态
            discarded = 0
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()
                discarded += 1
            if discarded:
                logger.warning(f"通知分发队列停止，丢弃 {discarded} 个未处理事件")

        for _ in self._workers:
            self._queue.put_nowait(_STOP)
        await asyncio.gather(*self._workers, return_exceptions=True)

        self._workers = []
        logger.info("通知分发队列已停止")

    def get_stats(self) -> Dict[str, Any]:
        """
        获取队列统计信息

        Returns:
            Dict[str, Any]: 统计信息
        """
        return {
            **self._stats,
            'current_size': self._queue.qsize() if self._queue else 0,
            'workers': len(self._workers),
            'running': self._running,
        }
