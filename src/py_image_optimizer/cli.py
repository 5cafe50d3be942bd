"""命令行入口。

image-optimizer SOURCE [OUTPUT]：把目录中的图片批量转换为 WebP。
退出码：0 全部成功；1 运行时错误或存在失败文件；2 配置错误。
"""

import argparse
import sys
from collections.abc import Sequence

from humanize import naturalsize

from . import __version__
from .exceptions import BatchAbortError, ConfigurationError, OptimizerError
from .models import ProcessingDefaults, ProgressSnapshot
from .optimizer import ImageOptimizer
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

EXAMPLES = """
Examples:
  image-optimizer ./images                        # 优化 ./images 到 ./optimized
  image-optimizer ./photos ./web-photos           # 指定输出目录
  image-optimizer ./images -q 85                  # 所有内容类型的默认质量
  image-optimizer ./images --photo-quality 90     # 照片质量
  image-optimizer ./images -c 8                   # 同时处理 8 张图片
  image-optimizer ./images --report-format text   # 生成文本报告
"""


def _quality(value: str) -> int:
    try:
        quality = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Quality must be a number between 1 and 100, got: {value}"
        ) from None
    if not 1 <= quality <= 100:
        raise argparse.ArgumentTypeError(
            f"Quality must be a number between 1 and 100, got: {value}"
        )
    return quality


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Must be a positive number, got: {value}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"Must be a positive number, got: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """构建参数解析器"""
    parser = argparse.ArgumentParser(
        prog="image-optimizer",
        description="Convert and optimize images to WebP format with intelligent compression",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("source", help="Source directory containing images to optimize")
    parser.add_argument(
        "output",
        nargs="?",
        default=ProcessingDefaults.DEFAULT_OUTPUT_DIR,
        help="Output directory for optimized images (default: ./optimized)",
    )

    quality = parser.add_argument_group("quality")
    quality.add_argument(
        "-q", "--quality", type=_quality, help="Default quality for all content types (1-100)"
    )
    quality.add_argument("--photo-quality", type=_quality, help="Quality for photographs")
    quality.add_argument("--graphic-quality", type=_quality, help="Quality for graphics/screenshots")
    quality.add_argument("--mixed-quality", type=_quality, help="Quality for mixed content")
    quality.add_argument("--min-quality", type=_quality, help="Minimum quality floor")

    processing = parser.add_argument_group("processing")
    processing.add_argument(
        "-c", "--concurrency", type=_positive_int, help="Number of images to process concurrently"
    )
    errors = processing.add_mutually_exclusive_group()
    errors.add_argument(
        "--continue-on-error",
        dest="continue_on_error",
        action="store_true",
        default=None,
        help="Continue processing remaining images when a conversion fails (default)",
    )
    errors.add_argument(
        "--stop-on-error",
        dest="continue_on_error",
        action="store_false",
        help="Stop scheduling new images after the first failure",
    )
    processing.add_argument(
        "--no-progress", action="store_true", help="Disable progress reporting"
    )
    processing.add_argument("--max-width", type=_positive_int, help="Maximum output width")
    processing.add_argument("--max-height", type=_positive_int, help="Maximum output height")

    output = parser.add_argument_group("output")
    output.add_argument("--no-report", action="store_true", help="Skip generating the report")
    output.add_argument(
        "--report-format", choices=["json", "text"], help="Report format (default: json)"
    )
    output.add_argument(
        "--force",
        action="store_true",
        help="Write into an output directory that already contains files",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def options_from_args(args: argparse.Namespace) -> dict:
    """把命令行参数转换为 ConfigBuilder 参数

    -q 作为三种内容类型的默认值，单独指定的类型质量优先。
    """
    return {
        "photo_quality": args.photo_quality or args.quality,
        "graphic_quality": args.graphic_quality or args.quality,
        "mixed_quality": args.mixed_quality or args.quality,
        "min_quality": args.min_quality,
        "concurrency": args.concurrency,
        "continue_on_error": args.continue_on_error,
        "progress": False if args.no_progress else None,
        "report": False if args.no_report else None,
        "report_format": args.report_format,
        "max_width": args.max_width,
        "max_height": args.max_height,
        "overwrite": True if args.force else None,
    }


def _log_progress(snapshot: ProgressSnapshot) -> None:
    logger.info(
        MessageFormatter.progress(
            snapshot.current, snapshot.total, snapshot.percentage, snapshot.current_file
        )
    )


def main(argv: Sequence[str] | None = None) -> int:
    """命令行主函数，返回退出码"""
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    try:
        optimizer = ImageOptimizer.from_options(**options_from_args(args))
        outcome = optimizer.optimize_directory(args.source, args.output, on_progress=_log_progress)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except BatchAbortError as e:
        print(
            f"Processing stopped after {len(e.results)} file(s): {e.message}",
            file=sys.stderr,
        )
        return EXIT_FAILURE
    except OptimizerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    report = outcome.report
    print(report.get_summary())
    print(
        f"Images: {report.successful_conversions} optimized, "
        f"{report.failed_conversions} failed, {report.skipped_conversions} skipped; "
        f"saved {naturalsize(report.total_size_reduction, binary=True)}"
    )
    if outcome.report_path:
        print(f"Report: {outcome.report_path}")
    if outcome.mapping_path:
        print(f"Filename mapping: {outcome.mapping_path}")

    return EXIT_FAILURE if report.failed_conversions > 0 else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
