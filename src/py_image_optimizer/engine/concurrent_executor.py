"""并发执行器模块。

在线程池上执行单张图片任务，由 FIFO 许可限制同时运行的任务数，并支持在
首个失败后停止调度。
"""

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from ..exceptions import ErrorHandler
from ..models.optimization_result import OptimizationResult, WorkItem
from ..utils.logging_helpers import get_logger
from .limiter import FifoLimiter


logger = get_logger()

TaskFunction = Callable[[WorkItem], OptimizationResult]
ResultCallback = Callable[[OptimizationResult], None]


class BoundedExecutor:
    """有界并发执行器

    调度循环先获取许可再提交任务；任务在记录结果之后才释放许可，因此
    停止信号总是在下一个任务被调度之前生效。
    """

    def __init__(self, max_workers: int = 4):
        """初始化并发执行器

        Args:
            max_workers: 最大并发数
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers

    def execute_tasks(
        self,
        work_items: Sequence[WorkItem],
        task_function: TaskFunction,
        on_result: ResultCallback,
        stop_event: threading.Event | None = None,
    ) -> int:
        """执行并发任务

        Args:
            work_items: 任务列表，按顺序调度
            task_function: 要执行的任务函数
            on_result: 每个终态结果的记录回调，在释放许可之前调用
            stop_event: 置位后不再调度新任务

        Returns:
            int: 实际调度的任务数
        """
        if not work_items:
            return 0

        limiter = FifoLimiter(self.max_workers)
        stop_event = stop_event or threading.Event()
        futures: dict[Future[None], WorkItem] = {}

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="optimizer"
        ) as executor:
            # 提交任务阶段
            for item in work_items:
                if stop_event.is_set():
                    break
                limiter.acquire()
                if stop_event.is_set():
                    limiter.release()
                    break

                try:
                    future = executor.submit(
                        self._run_task, item, task_function, on_result, limiter
                    )
                except RuntimeError as e:
                    limiter.release()
                    on_result(
                        ErrorHandler.handle_pipeline_error(e, item.input_path, "任务提交")
                    )
                    continue
                futures[future] = item

            if stop_event.is_set():
                logger.warning(
                    f"检测到失败，停止调度，剩余 {len(work_items) - len(futures)} 个文件未处理"
                )

            # 收集结果阶段
            for future in as_completed(futures):
                future.result()

        return len(futures)

    @staticmethod
    def _run_task(
        item: WorkItem,
        task_function: TaskFunction,
        on_result: ResultCallback,
        limiter: FifoLimiter,
    ) -> None:
        try:
            try:
                result = task_function(item)
            except Exception as e:
                result = ErrorHandler.handle_pipeline_error(
                    e, item.input_path, "并发任务处理"
                )
            on_result(result)
        finally:
            limiter.release()
