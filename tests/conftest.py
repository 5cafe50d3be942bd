"""测试配置文件。

提供测试所需的fixtures和图片生成工具。所有图片在临时目录中即时生成。
"""

import tempfile
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def save_solid(path: Path, color=(255, 0, 0), size=(100, 100), format=None) -> Path:
    """生成纯色图片"""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color=color).save(path, format)
    return path


def save_gradient(path: Path, size=(256, 256), format=None) -> Path:
    """生成水平渐变加竖条纹的图片，用于质量对比"""
    path.parent.mkdir(parents=True, exist_ok=True)
    width, height = size
    x = np.linspace(0, 255, width, dtype=np.float64)
    red = np.tile(x, (height, 1))
    green = np.tile(255 - x, (height, 1))
    blue = np.zeros((height, width))
    blue[:, ::8] = 255
    arr = np.stack([red, green, blue], axis=-1).astype(np.uint8)
    Image.fromarray(arr, "RGB").save(path, format)
    return path


def save_noise_rgba(path: Path, size=(64, 64), seed: int = 7) -> Path:
    """生成随机噪声 RGBA 图片，alpha 在 180-200 之间"""
    path.parent.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(seed)
    width, height = size
    rgb = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    alpha = rng.integers(180, 201, size=(height, width, 1), dtype=np.uint8)
    Image.fromarray(np.concatenate([rgb, alpha], axis=-1), "RGBA").save(path, "PNG")
    return path


def save_corrupt(path: Path) -> Path:
    """生成扩展名正确但内容无法解码的文件"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"this is not an image at all")
    return path


def make_characteristics(**overrides):
    """创建 ImageCharacteristics，提供中性默认值"""
    from py_image_optimizer.models import ImageCharacteristics

    values = {
        "color_complexity": 50.0,
        "edge_intensity": 50.0,
        "has_transparency": False,
        "effective_color_depth": 8,
        "aspect_ratio": 1.0,
    }
    values.update(overrides)
    return ImageCharacteristics.from_measurements(**values)


@pytest.fixture
def temp_dir():
    """临时目录fixture"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    """包含两张有效 JPEG 的源目录"""
    source = temp_dir / "images"
    save_solid(source / "red.jpg", (255, 0, 0))
    save_solid(source / "nested" / "blue.jpg", (0, 0, 255))
    return source


@pytest.fixture
def output_dir(temp_dir: Path) -> Path:
    """与源目录同级、尚不存在的输出目录"""
    return temp_dir / "optimized"
