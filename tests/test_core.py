"""核心功能测试。

测试编解码、格式检测、内容分析和质量验证模块。
"""

from pathlib import Path

import pytest
from PIL import Image

from py_image_optimizer.core.analyzer import (
    ContentAnalyzer,
    classify,
    classify_content,
    effective_color_depth_from,
    select_strategy,
)
from py_image_optimizer.core.codec import PillowCodec
from py_image_optimizer.core.formats import FormatDetector, identify_format
from py_image_optimizer.core.validator import QualityValidator
from py_image_optimizer.exceptions import AnalysisError, CodecError, ValidationError
from py_image_optimizer.models import (
    AnalysisDefaults,
    ChannelStatistics,
    CompressionStrategy,
    ContentType,
    ImageStatistics,
    ValidationDefaults,
)
from tests.conftest import (
    make_characteristics,
    save_corrupt,
    save_gradient,
    save_noise_rgba,
    save_solid,
)


class TestFormatDetector:
    """格式检测测试"""

    @pytest.fixture
    def detector(self):
        return FormatDetector()

    def test_identify_format_by_signature(self):
        """测试文件头签名识别"""
        assert identify_format(b"\xff\xd8\xff\xe0" + b"\x00" * 8) == "jpeg"
        assert identify_format(b"\x89PNG\r\n\x1a\n\x00\x00\x00\x00") == "png"
        assert identify_format(b"II*\x00" + b"\x00" * 8) == "tiff"
        assert identify_format(b"RIFF\x00\x00\x00\x00WEBP") == "webp"
        assert identify_format(b"GIF89a") is None

    def test_detect_real_files(self, detector, temp_dir: Path):
        """测试真实文件的格式识别"""
        jpeg = save_solid(temp_dir / "a.jpg")
        png = save_solid(temp_dir / "b.png")
        webp = save_solid(temp_dir / "c.webp")

        assert detector.detect_format(jpeg) == "jpeg"
        assert detector.detect_format(png) == "png"
        assert detector.detect_format(webp) == "webp"

    def test_signature_mismatch_falls_back_to_extension(self, detector, temp_dir: Path):
        """测试签名与扩展名不一致时按扩展名判断"""
        png_named_jpg = save_solid(temp_dir / "really_png.jpg", format="PNG")
        assert detector.detect_format(png_named_jpg) == "jpeg"

    def test_corrupt_file_with_supported_extension_is_valid(self, detector, temp_dir: Path):
        """测试内容损坏但扩展名受支持的文件通过格式检查（解码阶段才失败）"""
        corrupt = save_corrupt(temp_dir / "broken.jpg")
        validation = detector.validate_image_file(corrupt)

        assert validation.is_valid
        assert validation.format == "jpeg"

    def test_unsupported_extension(self, detector, temp_dir: Path):
        """测试不支持的格式"""
        gif = temp_dir / "anim.gif"
        Image.new("P", (10, 10)).save(gif, "GIF")

        validation = detector.validate_image_file(gif)
        assert not validation.is_valid
        assert validation.error_message == "Unsupported or unrecognized image format"

    def test_restricted_supported_formats(self, temp_dir: Path):
        """测试受限的支持格式列表"""
        detector = FormatDetector(["png"])
        jpeg = save_solid(temp_dir / "a.jpg")

        validation = detector.validate_image_file(jpeg)
        assert not validation.is_valid
        assert validation.error_message == "Format jpeg is not supported"

    def test_missing_file(self, detector, temp_dir: Path):
        """测试文件不存在"""
        with pytest.raises(FileNotFoundError):
            detector.detect_format(temp_dir / "missing.jpg")

        validation = detector.validate_image_file(temp_dir / "missing.jpg")
        assert not validation.is_valid
        assert validation.error_message.startswith("Failed to detect format")


class TestPillowCodec:
    """Pillow 编解码器测试"""

    @pytest.fixture
    def codec(self):
        return PillowCodec()

    def test_decode_metadata_rgb(self, codec, temp_dir: Path):
        """测试 RGB 图片元数据"""
        path = save_solid(temp_dir / "red.jpg", size=(120, 60))
        metadata = codec.decode_metadata(path)

        assert metadata.format == "JPEG"
        assert (metadata.width, metadata.height) == (120, 60)
        assert metadata.channels == 3
        assert not metadata.has_alpha
        assert metadata.bit_depth == 8
        assert metadata.aspect_ratio == pytest.approx(2.0)
        assert metadata.file_size == path.stat().st_size

    def test_decode_metadata_rgba(self, codec, temp_dir: Path):
        """测试带透明通道的图片元数据"""
        metadata = codec.decode_metadata(save_noise_rgba(temp_dir / "alpha.png"))

        assert metadata.channels == 4
        assert metadata.has_alpha

    def test_decode_metadata_16bit(self, codec, temp_dir: Path):
        """测试 16 位灰度图的位深"""
        path = temp_dir / "deep.png"
        Image.new("I;16", (16, 16), color=40000).save(path, "PNG")

        assert codec.decode_metadata(path).bit_depth == 16

    def test_decode_corrupt_raises_codec_error(self, codec, temp_dir: Path):
        """测试无法解码的文件"""
        with pytest.raises(CodecError):
            codec.decode_metadata(save_corrupt(temp_dir / "bad.jpg"))

    def test_statistics_of_solid_image(self, codec, temp_dir: Path):
        """测试纯色图的通道统计"""
        stats = codec.compute_statistics(save_solid(temp_dir / "red.png"))

        assert len(stats.channels) == 3
        assert stats.channels[0].mean == pytest.approx(255)
        assert stats.channels[1].mean == pytest.approx(0)
        assert stats.mean_stdev() == pytest.approx(0)

    def test_convolution_of_solid_image_is_zero(self, codec, temp_dir: Path):
        """测试纯色图的边缘响应为 0"""
        image = codec.load(save_solid(temp_dir / "red.png"))
        response = codec.apply_convolution(image, AnalysisDefaults.EDGE_KERNEL)

        assert response.mean == pytest.approx(0)
        assert response.max == pytest.approx(0)

    def test_convolution_response_is_clamped(self, codec):
        """测试卷积响应截断到 [0, 255]"""
        image = Image.new("L", (9, 9), color=0)
        image.putpixel((4, 4), 255)
        response = codec.apply_convolution(image, AnalysisDefaults.EDGE_KERNEL)

        assert response.max == pytest.approx(255)
        assert response.min == pytest.approx(0)

    def test_convolution_rejects_bad_kernel(self, codec):
        """测试卷积核长度校验"""
        with pytest.raises(CodecError):
            codec.apply_convolution(Image.new("L", (4, 4)), (1, 2, 3))

    def test_resize_preserves_aspect(self, codec):
        """测试等比缩放"""
        resized = codec.resize(Image.new("RGB", (400, 200)), 100, 100)
        assert resized.size == (100, 50)

    def test_resize_never_upscales(self, codec):
        """测试不放大"""
        image = Image.new("RGB", (50, 40))
        assert codec.resize(image, 1920, 1080).size == (50, 40)

    def test_encode_webp_and_jpeg(self, codec):
        """测试编码输出"""
        rgba = Image.new("RGBA", (32, 32), (10, 20, 30, 128))

        webp = codec.encode(rgba, "WEBP", 80)
        jpeg = codec.encode(rgba, "jpg", 80)

        assert webp[:4] == b"RIFF" and webp[8:12] == b"WEBP"
        assert jpeg[:3] == b"\xff\xd8\xff"

    def test_encode_unsupported_format(self, codec):
        """测试不支持的输出格式"""
        with pytest.raises(CodecError):
            codec.encode(Image.new("RGB", (8, 8)), "BMP", 80)


class TestContentClassification:
    """内容分类与策略选择测试"""

    def test_transparency_always_graphic(self):
        """测试透明图片总是图形"""
        c = make_characteristics(
            color_complexity=95, edge_intensity=5, has_transparency=True
        )
        assert classify_content(c) == ContentType.GRAPHIC
        assert select_strategy(ContentType.GRAPHIC, c) == CompressionStrategy.HIGH_QUALITY

    def test_photo_classification(self):
        """测试照片判定"""
        c = make_characteristics(color_complexity=70, edge_intensity=20)
        assert classify(c).content_type == ContentType.PHOTO
        assert classify(c).compression_strategy == CompressionStrategy.BALANCED

        vivid = make_characteristics(color_complexity=85, edge_intensity=20)
        assert classify(vivid).compression_strategy == CompressionStrategy.HIGH_QUALITY

    def test_sharp_edges_are_graphic(self):
        """测试强边缘判定为图形"""
        c = make_characteristics(color_complexity=70, edge_intensity=75)
        assert classify_content(c) == ContentType.GRAPHIC
        assert select_strategy(ContentType.GRAPHIC, c) == CompressionStrategy.BALANCED

    def test_flat_graphic_is_size_optimized(self):
        """测试低复杂度图形使用体积优先策略"""
        c = make_characteristics(
            color_complexity=10, edge_intensity=10, effective_color_depth=6
        )
        assert classify(c).content_type == ContentType.GRAPHIC
        assert classify(c).compression_strategy == CompressionStrategy.SIZE_OPTIMIZED

    def test_mixed_fallback(self):
        """测试其余情况为混合内容"""
        c = make_characteristics(color_complexity=50, edge_intensity=50)
        assert classify(c).content_type == ContentType.MIXED
        assert classify(c).compression_strategy == CompressionStrategy.BALANCED

        busy = make_characteristics(color_complexity=75, edge_intensity=50)
        assert classify(busy).content_type == ContentType.MIXED
        assert classify(busy).compression_strategy == CompressionStrategy.HIGH_QUALITY

    def test_effective_color_depth(self):
        """测试有效色深估计"""

        def stats(value_range: float) -> ImageStatistics:
            channel = ChannelStatistics(mean=0, stdev=0, min=0, max=value_range)
            return ImageStatistics(channels=[channel])

        assert effective_color_depth_from(stats(30), 8) == 6
        assert effective_color_depth_from(stats(100), 8) == 7
        assert effective_color_depth_from(stats(200), 8) == 8
        assert effective_color_depth_from(stats(200), 16) == 16

    def test_characteristics_are_clamped(self):
        """测试特征值截断"""
        c = make_characteristics(
            color_complexity=250, edge_intensity=-5, effective_color_depth=2
        )
        assert c.color_complexity == 100
        assert c.edge_intensity == 0
        assert c.effective_color_depth == 6


class TestContentAnalyzer:
    """内容分析器测试"""

    @pytest.fixture
    def analyzer(self):
        return ContentAnalyzer()

    def test_solid_image_is_flat_graphic(self, analyzer, temp_dir: Path):
        """测试纯色图分析"""
        analysis = analyzer.analyze(save_solid(temp_dir / "red.png"))

        assert analysis.characteristics.color_complexity == pytest.approx(0)
        assert analysis.characteristics.edge_intensity == pytest.approx(0)
        assert analysis.characteristics.effective_color_depth == 6
        assert analysis.classification.content_type == ContentType.GRAPHIC
        assert (
            analysis.classification.compression_strategy
            == CompressionStrategy.SIZE_OPTIMIZED
        )

    def test_transparent_noise(self, analyzer, temp_dir: Path):
        """测试透明噪声图分析"""
        analysis = analyzer.analyze(save_noise_rgba(temp_dir / "noise.png"))

        assert analysis.characteristics.has_transparency
        assert analysis.characteristics.color_complexity > 80
        assert analysis.classification.content_type == ContentType.GRAPHIC
        assert (
            analysis.classification.compression_strategy
            == CompressionStrategy.HIGH_QUALITY
        )

    def test_corrupt_file_raises_analysis_error(self, analyzer, temp_dir: Path):
        """测试无法解码的文件"""
        with pytest.raises(AnalysisError, match="Failed to analyze image"):
            analyzer.analyze(save_corrupt(temp_dir / "bad.jpg"))


class TestQualityValidator:
    """质量验证测试"""

    def test_overall_score_formula(self):
        """测试综合评分计算"""
        assert QualityValidator.overall_score(1.0, 1.0, 1.0, 80) == pytest.approx(80)
        assert QualityValidator.overall_score(0.5, 1.0, 0.0, 100) == pytest.approx(50)
        assert QualityValidator.overall_score(2.0, 2.0, 2.0, 100) == 100

    def test_solid_image_passes(self, temp_dir: Path):
        """测试纯色图的输出通过验证"""
        codec = PillowCodec()
        original = save_solid(temp_dir / "red.jpg")
        produced = temp_dir / "red.webp"
        produced.write_bytes(codec.encode(codec.load(original), "WEBP", 78))

        result = QualityValidator(codec=codec).validate(original, produced, 78)

        assert result.is_valid, result.issues
        assert result.quality_score == pytest.approx(78, abs=1.5)
        assert result.metrics.structural_similarity > 0.95

    def test_score_grows_with_quality(self, temp_dir: Path):
        """测试评分随编码质量单调不减"""
        codec = PillowCodec()
        original = save_gradient(temp_dir / "gradient.png")
        validator = QualityValidator(codec=codec)

        scores = []
        for quality in (30, 50, 70, 90):
            produced = temp_dir / f"gradient_{quality}.webp"
            produced.write_bytes(codec.encode(codec.load(original), "WEBP", quality))
            scores.append(validator.validate(original, produced, quality).quality_score)

        assert scores == sorted(scores)

    def test_threshold_issue(self, temp_dir: Path):
        """测试评分低于阈值时报告问题"""
        codec = PillowCodec()
        original = save_solid(temp_dir / "red.png")
        produced = temp_dir / "red.webp"
        produced.write_bytes(codec.encode(codec.load(original), "WEBP", 50))

        result = QualityValidator(minimum_quality_threshold=90, codec=codec).validate(
            original, produced, 50
        )

        assert not result.is_valid
        assert not result.meets_threshold
        assert any("below threshold 90%" in issue for issue in result.issues)

    def test_size_increase_issue(self, temp_dir: Path):
        """测试输出体积明显增大时报告问题"""
        codec = PillowCodec()
        original = temp_dir / "tiny.webp"
        original.write_bytes(codec.encode(Image.new("RGB", (8, 8)), "WEBP", 10))
        produced = save_noise_rgba(temp_dir / "big.png", size=(64, 64))

        result = QualityValidator(codec=codec).validate(original, produced, 90)

        assert any("larger than original" in issue for issue in result.issues)

    def test_unreadable_images_use_fallbacks(self, temp_dir: Path):
        """测试对比图无法解码时使用保守估计"""
        original = save_corrupt(temp_dir / "a.jpg")
        produced = save_corrupt(temp_dir / "b.webp")

        result = QualityValidator().validate(original, produced, 100)

        metrics = result.metrics
        assert metrics.structural_similarity == ValidationDefaults.FALLBACK_STRUCTURAL
        assert metrics.color_accuracy == ValidationDefaults.FALLBACK_COLOR
        assert metrics.sharpness_retention == ValidationDefaults.FALLBACK_SHARPNESS
        assert metrics.quality_loss == ValidationDefaults.FALLBACK_LOSS
        assert any(issue.startswith("File integrity issue") for issue in result.issues)

    def test_missing_output_raises(self, temp_dir: Path):
        """测试输出文件不存在"""
        original = save_solid(temp_dir / "red.png")
        with pytest.raises(ValidationError):
            QualityValidator().validate(original, temp_dir / "missing.webp", 80)
