"""文件工具模块。

提供图像文件查找和输出目录安全检查。
"""

from collections.abc import Iterable
from pathlib import Path

from ..models.constants import ProcessingDefaults
from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()


def find_image_files(
    directory: str | Path,
    supported_extensions: Iterable[str],
    recursive: bool = True,
    exclude_dirs: list[Path | str] | None = None,
) -> list[Path]:
    """查找目录中的图像文件。

    Args:
        directory: 搜索目录
        supported_extensions: 支持的扩展名（带或不带点号，大小写不敏感）
        recursive: 是否递归搜索子目录
        exclude_dirs: 要排除的目录，可以是目录名或完整路径

    Returns:
        list[Path]: 按路径排序的图像文件列表
    """
    directory = Path(directory)
    extensions = {
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in supported_extensions
    }
    excluded_names = set(ProcessingDefaults.EXCLUDE_DIRS)
    excluded_paths: list[Path] = []
    for item in exclude_dirs or []:
        if isinstance(item, Path) and item.is_absolute():
            excluded_paths.append(item.resolve())
        else:
            excluded_names.add(str(item))

    if not directory.exists():
        logger.warning(MessageFormatter.directory_not_found(directory))
        return []

    if not directory.is_dir():
        logger.warning(MessageFormatter.path_not_directory(directory))
        return []

    # 选择搜索模式
    pattern = "**/*" if recursive else "*"

    found: list[Path] = []
    try:
        for file_path in directory.glob(pattern):
            if not file_path.is_file() or file_path.suffix.lower() not in extensions:
                continue
            relative_parts = file_path.relative_to(directory).parts[:-1]
            if any(part in excluded_names for part in relative_parts):
                continue
            if excluded_paths and _is_within_any(file_path.resolve(), excluded_paths):
                continue
            found.append(file_path)
    except PermissionError:
        logger.error(MessageFormatter.permission_error(directory, "访问目录"))

    return sorted(found)


def _is_within_any(path: Path, parents: list[Path]) -> bool:
    return any(path.is_relative_to(parent) for parent in parents)


def is_output_directory_safe(output_dir: str | Path) -> bool:
    """检查输出目录是否可以安全写入

    目录不存在、为空，或只包含先前运行留下的报告/映射文件时视为安全。
    """
    output_dir = Path(output_dir)
    if not output_dir.exists():
        return True
    if not output_dir.is_dir():
        return False

    for entry in output_dir.iterdir():
        name = entry.name.lower()
        is_artifact = name.endswith(ProcessingDefaults.ARTIFACT_SUFFIXES) and any(
            keyword in name for keyword in ProcessingDefaults.ARTIFACT_KEYWORDS
        )
        if entry.is_file() and is_artifact:
            continue
        return False
    return True


def is_same_or_subdirectory(candidate: str | Path, parent: str | Path) -> bool:
    """candidate 是否等于 parent 或位于其内部"""
    candidate_path = Path(candidate).resolve()
    parent_path = Path(parent).resolve()
    return candidate_path == parent_path or candidate_path.is_relative_to(parent_path)
