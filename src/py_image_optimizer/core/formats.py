"""格式检测模块。

在解码之前通过文件头签名识别输入格式，签名与扩展名不一致或无法识别时
回退到扩展名判断。
"""

from collections.abc import Iterable
from pathlib import Path

from ..models.constants import ImageFormats
from ..models.optimization_result import FileValidation
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()

HEADER_SIZE = 12


class FormatDetector:
    """输入格式检测器"""

    def __init__(self, supported_formats: Iterable[str] | None = None) -> None:
        """初始化格式检测器

        Args:
            supported_formats: 支持的扩展名列表（不带点号）
        """
        formats = supported_formats or ImageFormats.DEFAULT_SUPPORTED
        self.supported_formats = [fmt.lower().lstrip(".") for fmt in formats]
        self.supported_families = {
            ImageFormats.EXTENSION_FAMILIES[fmt]
            for fmt in self.supported_formats
            if fmt in ImageFormats.EXTENSION_FAMILIES
        }

    def detect_format(self, path: Path) -> str | None:
        """识别文件格式族（jpeg/png/tiff/webp）

        Raises:
            FileNotFoundError: 文件不存在
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(MessageFormatter.file_not_found(path))

        with path.open("rb") as fh:
            header = fh.read(HEADER_SIZE)

        detected = identify_format(header)
        extension = path.suffix.lower().lstrip(".")
        if detected and ImageFormats.EXTENSION_FAMILIES.get(extension) == detected:
            return detected

        # 签名缺失或与扩展名不一致时按扩展名判断
        return self._detect_from_extension(extension)

    def _detect_from_extension(self, extension: str) -> str | None:
        if extension not in self.supported_formats:
            return None
        return ImageFormats.EXTENSION_FAMILIES.get(extension)

    def is_format_supported(self, family: str) -> bool:
        return family.lower() in self.supported_families

    def validate_image_file(self, path: Path) -> FileValidation:
        """检查文件是否为可处理的受支持格式"""
        try:
            family = self.detect_format(path)
        except OSError as e:
            logger.debug(MessageFormatter.operation_failed("格式检测", path, e))
            return FileValidation(
                is_valid=False, error_message=f"Failed to detect format: {e}"
            )

        if family is None:
            return FileValidation(
                is_valid=False,
                error_message="Unsupported or unrecognized image format",
            )

        if not self.is_format_supported(family):
            return FileValidation(
                is_valid=False,
                format=family,
                error_message=f"Format {family} is not supported",
            )

        return FileValidation(is_valid=True, format=family)


def identify_format(header: bytes) -> str | None:
    """根据文件头签名识别格式族"""
    for signature, family in ImageFormats.MAGIC_SIGNATURES:
        if header.startswith(signature):
            return family
    if len(header) >= 12 and header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "webp"
    return None
