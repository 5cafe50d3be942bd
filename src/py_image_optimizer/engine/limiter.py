"""并发许可模块。

提供按先来先得顺序移交许可的计数信号量。
"""

import threading
from collections import deque


class FifoLimiter:
    """FIFO 计数信号量

    release 时若有等待者，许可直接移交给等待最久的线程，不会被新来的
    acquire 抢占。
    """

    def __init__(self, permits: int) -> None:
        if permits < 1:
            raise ValueError(f"permits must be at least 1, got {permits}")
        self._permits = permits
        self._condition = threading.Condition()
        self._waiters: deque[list[bool]] = deque()

    def acquire(self) -> None:
        with self._condition:
            if self._permits > 0 and not self._waiters:
                self._permits -= 1
                return

            ticket = [False]
            self._waiters.append(ticket)
            while not ticket[0]:
                self._condition.wait()

    def release(self) -> None:
        with self._condition:
            if self._waiters:
                # 许可直接交给队首等待者
                self._waiters.popleft()[0] = True
                self._condition.notify_all()
            else:
                self._permits += 1

    def available_permits(self) -> int:
        with self._condition:
            return self._permits

    def queue_length(self) -> int:
        with self._condition:
            return len(self._waiters)

    def __enter__(self) -> "FifoLimiter":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
