"""文件命名工具模块。

提供统一的输出文件命名策略和路径规划功能。
"""

import itertools
from collections.abc import Sequence
from pathlib import Path

from ..models.constants import get_output_extension
from ..models.optimization_result import WorkItem


class FileNamingStrategy:
    """文件命名策略类"""

    @staticmethod
    def generate_output_name(input_path: Path, target_format: str = "WEBP") -> str:
        """生成输出文件名：保留原文件名主干，替换为目标格式扩展名

        Args:
            input_path: 输入文件路径
            target_format: 目标格式

        Returns:
            str: 生成的文件名（不含路径）
        """
        return f"{input_path.stem}{get_output_extension(target_format)}"


class PathResolver:
    """路径解析器"""

    @staticmethod
    def plan_work_items(
        files: Sequence[Path],
        output_dir: Path,
        source_dir: Path | None = None,
        target_format: str = "WEBP",
        preserve_structure: bool = True,
    ) -> list[WorkItem]:
        """为每个输入文件规划输出路径

        保持结构时输出路径镜像源目录的相对路径；平铺时同名文件追加数字后缀。

        Args:
            files: 输入文件列表
            output_dir: 输出目录
            source_dir: 源目录，用于计算相对路径
            target_format: 目标格式
            preserve_structure: 是否保持目录结构

        Returns:
            list[WorkItem]: 与 files 顺序一致的任务列表
        """
        planned: set[Path] = set()
        items: list[WorkItem] = []

        for file_path in files:
            filename = FileNamingStrategy.generate_output_name(file_path, target_format)
            target_dir = output_dir
            if preserve_structure and source_dir is not None:
                try:
                    relative_parent = file_path.relative_to(source_dir).parent
                    target_dir = output_dir / relative_parent
                except ValueError:
                    # 不在源目录内，直接放到输出目录
                    pass

            output_path = PathResolver.ensure_unique_path(target_dir / filename, planned)
            planned.add(output_path)
            items.append(WorkItem(input_path=file_path, output_path=output_path))

        return items

    @staticmethod
    def ensure_unique_path(path: Path, taken: set[Path]) -> Path:
        """确保路径在已规划集合中唯一，冲突时添加数字后缀

        Args:
            path: 原始路径
            taken: 已占用的路径集合

        Returns:
            Path: 唯一的路径
        """
        if path not in taken:
            return path

        base = path.stem
        suffix = path.suffix
        parent = path.parent

        for counter in itertools.count(1):
            new_path = parent / f"{base}_{counter}{suffix}"
            if new_path not in taken:
                return new_path

        return path  # pragma: no cover


def build_filename_mapping(
    work_items: Sequence[WorkItem], source_dir: Path | None, output_dir: Path
) -> dict[str, str]:
    """生成原始文件到输出文件的映射（相对路径，使用正斜杠）"""
    mapping: dict[str, str] = {}
    for item in work_items:
        original = _relative_or_name(item.input_path, source_dir)
        output = _relative_or_name(item.output_path, output_dir)
        mapping[original] = output
    return mapping


def _relative_or_name(path: Path, base: Path | None) -> str:
    if base is not None:
        try:
            return path.relative_to(base).as_posix()
        except ValueError:
            pass
    return path.name
