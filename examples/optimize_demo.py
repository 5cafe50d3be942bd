#!/usr/bin/env python3
"""批量 Web 图像优化演示脚本。

展示 py_image_optimizer 的核心功能，包括：
- 单张图片的内容分析与质量决策
- 目录批量转换为 WebP（进度回调、报告和文件名映射）
- 自定义质量与尺寸上限
"""

import shutil
from pathlib import Path

import numpy as np
from PIL import Image

from py_image_optimizer import ImageOptimizer, OptimizerError
from py_image_optimizer.models import ProgressSnapshot


def get_work_dir(subdir: str = "") -> Path:
    """获取工作目录 - 使用项目的 tmp 目录"""
    project_root = Path(__file__).parent.parent
    work_dir = project_root / "tmp" / "examples"
    if subdir:
        work_dir = work_dir / subdir
    return work_dir


def create_sample_images(images_dir: Path) -> list[Path]:
    """生成三类示例图片：照片风格渐变、纯色图形和半透明图标"""
    images_dir.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(2024)

    # 带噪声的渐变，接近照片
    x = np.linspace(0, 255, 1600)
    y = np.linspace(0, 255, 1000)[:, None]
    photo = np.stack([np.tile(x, (1000, 1)), np.tile(y, (1, 1600)), (x + y) / 2], axis=-1)
    photo += rng.normal(0, 12, photo.shape)
    photo_path = images_dir / "landscape.jpg"
    Image.fromarray(np.clip(photo, 0, 255).astype(np.uint8), "RGB").save(photo_path, quality=95)

    # 纯色块，接近截图或图表
    graphic = Image.new("RGB", (800, 600), (240, 240, 240))
    graphic.paste((30, 120, 200), (100, 100, 700, 300))
    graphic_path = images_dir / "charts" / "diagram.png"
    graphic_path.parent.mkdir(exist_ok=True)
    graphic.save(graphic_path)

    # 半透明图标
    icon = Image.new("RGBA", (256, 256), (255, 140, 0, 160))
    icon_path = images_dir / "icons" / "badge.png"
    icon_path.parent.mkdir(exist_ok=True)
    icon.save(icon_path)

    return [photo_path, graphic_path, icon_path]


def demo_analysis(images: list[Path]):
    """内容分析演示"""
    print("=== 内容分析演示 ===")

    optimizer = ImageOptimizer()
    for image_path in images:
        analysis, decision = optimizer.analyze_image(image_path)
        metadata = analysis.metadata
        c = analysis.characteristics

        print(
            f"\n📸 {image_path.name}: {metadata.format} {metadata.width}x{metadata.height} "
            f"({metadata.get_file_size_human()})"
        )
        print(
            f"  📊 颜色复杂度 {c.color_complexity:.1f} | 边缘强度 {c.edge_intensity:.1f} | "
            f"透明 {c.has_transparency} | 色深 {c.effective_color_depth} bit"
        )
        print(
            f"  🤖 分类: {analysis.classification.content_type.value} | "
            f"策略: {analysis.classification.compression_strategy.value} | Q{decision.quality}"
        )
        print(f"  💡 原因: {'; '.join(decision.reasoning)}")


def print_progress(snapshot: ProgressSnapshot):
    name = Path(snapshot.current_file).name
    print(f"  [{snapshot.current}/{snapshot.total}] {snapshot.percentage:.0f}% {name}")


def demo_batch(images_dir: Path, output_dir: Path):
    """批量转换演示"""
    print("\n=== 批量转换演示 ===")

    optimizer = ImageOptimizer.from_options(concurrency=2, progress_interval_ms=0)
    outcome = optimizer.optimize_directory(images_dir, output_dir, on_progress=print_progress)

    report = outcome.report
    print(f"\n{report.get_summary()}")
    for result in report.results:
        if result.is_success:
            print(
                f"  {result.original_path.name} -> {result.output_path.name}: "
                f"Q{result.quality_used}, 评分 {result.quality_score:.1f}, "
                f"压缩 {result.compression_ratio:.1f}%"
            )
    print(f"📄 报告: {outcome.report_path}")
    print(f"🗺️  映射: {outcome.mapping_path}")


def demo_custom_settings(images_dir: Path, output_dir: Path):
    """自定义质量与尺寸演示"""
    print("\n=== 自定义设置演示 ===")

    optimizer = ImageOptimizer.from_options(
        photo_quality=90,
        min_quality=80,
        max_width=800,
        max_height=800,
        report_format="text",
        progress=False,
    )
    outcome = optimizer.optimize_directory(images_dir, output_dir)

    for result in outcome.report.results:
        if result.is_success:
            with Image.open(result.output_path) as img:
                print(f"  {result.output_path.name}: {img.size[0]}x{img.size[1]} Q{result.quality_used}")
    print(f"📄 文本报告: {outcome.report_path}")


def main():
    """主函数"""
    print("🖼️  批量 Web 图像优化演示")
    print("=" * 50)

    work_dir = get_work_dir()
    if work_dir.exists():
        shutil.rmtree(work_dir)

    images_dir = work_dir / "images"
    try:
        images = create_sample_images(images_dir)
        demo_analysis(images)
        demo_batch(images_dir, work_dir / "optimized")
        demo_custom_settings(images_dir, work_dir / "optimized-small")

        print("\n✅ 所有演示完成！")

    except OptimizerError as e:
        print(f"\n❌ 演示过程中出现错误: {e.message}")
        raise


if __name__ == "__main__":
    main()
