"""消息格式化工具模块。

提供统一的错误消息、进度消息格式化功能。
"""

from pathlib import Path

from humanize import naturalsize


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def directory_not_found(directory: str | Path) -> str:
        """目录不存在错误消息"""
        return f"目录不存在: {directory}"

    @staticmethod
    def path_not_directory(path: str | Path) -> str:
        """路径不是目录错误消息"""
        return f"路径不是目录: {path}"

    @staticmethod
    def permission_error(path: str | Path, operation: str = "访问") -> str:
        """权限错误消息"""
        return f"权限错误，无法{operation}: {path}"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def format_error(operation: str, path: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{path}]: {error}"

    @staticmethod
    def quality_decision(path: str | Path, quality: int, reasoning: list[str]) -> str:
        """质量决策日志"""
        return f"质量决策 [{Path(path).name}]: {quality} ({'; '.join(reasoning)})"

    @staticmethod
    def conversion_done(
        path: str | Path, original_size: int, output_size: int, ratio: float
    ) -> str:
        """转换完成日志"""
        return (
            f"转换完成 [{Path(path).name}]: "
            f"{naturalsize(original_size, binary=True)} → "
            f"{naturalsize(output_size, binary=True)} ({ratio:.1f}%)"
        )

    @staticmethod
    def progress(current: int, total: int, percentage: float, filename: str) -> str:
        """进度消息"""
        return f"进度 {current}/{total} ({percentage:.0f}%) - {filename}"

    @staticmethod
    def batch_started(total: int, source: str | Path, concurrency: int) -> str:
        """批量处理开始消息"""
        return f"开始批量处理 {total} 个文件: {source}（并发 {concurrency}）"
