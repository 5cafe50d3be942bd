"""图像编解码器模块。

定义编解码器协议，并基于 Pillow 和 numpy 提供默认实现：读取元数据、
通道统计、3x3 卷积响应、缩放、锐化和编码。实现无状态，可在多线程中复用。
"""

from collections.abc import Sequence
from io import BytesIO
from pathlib import Path
from typing import Protocol

import numpy as np
from PIL import Image, ImageFilter, ImageOps

from ..exceptions import CodecError, handle_codec_errors
from ..models.constants import AnalysisDefaults, ImageFormats, get_format_alias
from ..models.image_metadata import ChannelStatistics, ImageMetadata, ImageStatistics
from ..utils.logging_helpers import get_logger


logger = get_logger()

ImageSource = Path | Image.Image


class Codec(Protocol):
    """编解码器协议，所有失败都以 CodecError 抛出"""

    def decode_metadata(self, path: Path) -> ImageMetadata: ...

    def load(self, path: Path) -> Image.Image: ...

    def compute_statistics(self, source: ImageSource) -> ImageStatistics: ...

    def apply_convolution(
        self, source: ImageSource, kernel: Sequence[float]
    ) -> ChannelStatistics: ...

    def resize(
        self,
        image: Image.Image,
        width: int,
        height: int,
        preserve_aspect: bool = True,
        no_upscale: bool = True,
    ) -> Image.Image: ...

    def sharpen(self, image: Image.Image) -> Image.Image: ...

    def encode(self, image: Image.Image, target_format: str, quality: int) -> bytes: ...

    def verify(self, path: Path) -> None: ...


class PillowCodec:
    """基于 Pillow 的编解码器"""

    @handle_codec_errors("读取图像元数据")
    def decode_metadata(self, path: Path) -> ImageMetadata:
        path = Path(path)
        with Image.open(path) as img:
            analysis_mode = _analysis_mode(img)
            width, height = img.size
            return ImageMetadata(
                file_path=path,
                file_size=path.stat().st_size,
                format=img.format or "UNKNOWN",
                mode=img.mode,
                width=width,
                height=height,
                channels=Image.getmodebands(analysis_mode),
                has_alpha=analysis_mode in ImageFormats.TRANSPARENCY_MODES,
                bit_depth=_bit_depth(img.mode),
            )

    @handle_codec_errors("解码图像")
    def load(self, path: Path) -> Image.Image:
        with Image.open(path) as img:
            # exif_transpose 返回已加载的副本，可以在 with 之外使用
            return ImageOps.exif_transpose(img)

    @handle_codec_errors("通道统计")
    def compute_statistics(self, source: ImageSource) -> ImageStatistics:
        work = _to_analysis_image(self._resolve(source))
        arr = np.asarray(work, dtype=np.float64)
        if arr.size == 0:
            raise CodecError("image has no pixels")
        if arr.ndim == 2:
            arr = arr[..., np.newaxis]

        channels = [
            ChannelStatistics(
                mean=float(band.mean()),
                stdev=float(band.std()),
                min=float(band.min()),
                max=float(band.max()),
            )
            for band in np.moveaxis(arr, -1, 0)
        ]
        return ImageStatistics(channels=channels)

    @handle_codec_errors("卷积")
    def apply_convolution(
        self, source: ImageSource, kernel: Sequence[float]
    ) -> ChannelStatistics:
        """对灰度图做 3x3 卷积，边界复制填充，响应截断到 [0, 255]"""
        if len(kernel) != 9:
            raise ValueError(f"kernel must have 9 weights, got {len(kernel)}")

        grey = _to_analysis_image(self._resolve(source)).convert("L")
        arr = np.asarray(grey, dtype=np.float64)
        if arr.size == 0:
            raise CodecError("image has no pixels")

        weights = np.asarray(kernel, dtype=np.float64).reshape(3, 3)[::-1, ::-1]
        padded = np.pad(arr, 1, mode="edge")
        height, width = arr.shape
        response = np.zeros_like(arr)
        for dy in range(3):
            for dx in range(3):
                weight = weights[dy, dx]
                if weight:
                    response += weight * padded[dy : dy + height, dx : dx + width]

        response = np.clip(response, 0, 255)
        return ChannelStatistics(
            mean=float(response.mean()),
            stdev=float(response.std()),
            min=float(response.min()),
            max=float(response.max()),
        )

    def resize(
        self,
        image: Image.Image,
        width: int,
        height: int,
        preserve_aspect: bool = True,
        no_upscale: bool = True,
    ) -> Image.Image:
        """缩放到目标框内"""
        current_width, current_height = image.size

        # 检查是否需要调整
        if no_upscale and current_width <= width and current_height <= height:
            return image

        # 计算新尺寸
        if preserve_aspect:
            ratio = min(width / current_width, height / current_height)
            new_width = max(1, int(current_width * ratio))
            new_height = max(1, int(current_height * ratio))
        else:
            new_width, new_height = width, height

        # 检查是否允许放大
        if no_upscale:
            new_width = min(new_width, current_width)
            new_height = min(new_height, current_height)

        if (new_width, new_height) == image.size:
            return image

        logger.debug(f"缩放图像: {image.size} → {(new_width, new_height)}")
        try:
            return image.resize((new_width, new_height), Image.Resampling.LANCZOS)
        except (OSError, ValueError) as e:
            raise CodecError(f"resize failed: {e}") from e

    def sharpen(self, image: Image.Image) -> Image.Image:
        """轻度锐化，补偿缩小带来的模糊"""
        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGBA" if _has_alpha(image) else "RGB")
        return image.filter(ImageFilter.UnsharpMask(radius=1, percent=60, threshold=2))

    @handle_codec_errors("图像编码")
    def encode(self, image: Image.Image, target_format: str, quality: int) -> bytes:
        target_format = get_format_alias(target_format)
        buffer = BytesIO()

        match target_format:
            case "WEBP":
                prepared = _prepare_for_webp(image)
                prepared.save(buffer, format="WEBP", quality=quality, method=6)
            case "JPEG":
                prepared = _prepare_for_jpeg(image)
                prepared.save(
                    buffer,
                    format="JPEG",
                    quality=quality,
                    optimize=True,
                    progressive=True,
                )
            case _:
                raise CodecError(f"unsupported output format: {target_format}")

        return buffer.getvalue()

    @handle_codec_errors("完整性检查")
    def verify(self, path: Path) -> None:
        with Image.open(path) as img:
            img.verify()

    def _resolve(self, source: ImageSource) -> Image.Image:
        if isinstance(source, Image.Image):
            return source
        return self.load(Path(source))


# ============================================================================
# 模式转换
# ============================================================================


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ImageFormats.TRANSPARENCY_MODES or "transparency" in img.info


def _bit_depth(mode: str) -> int:
    if mode.startswith("I;16") or mode in ("I", "F"):
        return 16
    return AnalysisDefaults.DEFAULT_BIT_DEPTH


def _analysis_mode(img: Image.Image) -> str:
    """统计分析使用的 8 位模式"""
    mode = img.mode
    if mode in ("RGB", "RGBA", "L", "LA"):
        return mode
    if mode in ("P", "PA"):
        return "RGBA" if _has_alpha(img) else "RGB"
    if mode.startswith("I;16") or mode in ("I", "F"):
        return "L"
    return "RGB"


def _to_analysis_image(img: Image.Image) -> Image.Image:
    """把任意模式转换为 8 位分析模式，高位深按峰值缩放到 0-255"""
    target = _analysis_mode(img)
    if img.mode == target:
        return img

    if img.mode.startswith("I;16") or img.mode in ("I", "F"):
        arr = np.asarray(img, dtype=np.float64)
        peak = 65535.0 if img.mode.startswith("I;16") or arr.max() > 255 else 255.0
        scaled = np.clip(arr / peak * 255.0, 0, 255).astype(np.uint8)
        return Image.fromarray(scaled)

    return img.convert(target)


def _prepare_for_webp(img: Image.Image) -> Image.Image:
    """为WebP格式准备图片"""
    # WebP支持RGB和RGBA
    if img.mode in ("P", "PA"):
        # 调色板模式，检查是否有透明度
        if _has_alpha(img):
            return img.convert("RGBA")
        return img.convert("RGB")
    if img.mode == "LA":
        # 灰度+alpha转换为RGBA
        return img.convert("RGBA")
    if img.mode in ("RGB", "RGBA"):
        return img

    # 灰度、高位深和其他模式统一转换为RGB
    return _to_analysis_image(img).convert("RGB")


def _prepare_for_jpeg(img: Image.Image) -> Image.Image:
    """为JPEG格式准备图片，透明区域合成到白色背景"""
    if img.mode in ("RGBA", "LA", "P", "PA"):
        if img.mode in ("P", "PA") and not _has_alpha(img):
            return img.convert("RGB")

        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background

    if img.mode == "RGB":
        return img

    return _to_analysis_image(img).convert("RGB")
