"""Entry point for python -m py_image_optimizer.

默认运行命令行优化器。
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
