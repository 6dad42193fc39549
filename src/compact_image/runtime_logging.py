"""loguru のログ出力設定"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Union

from loguru import logger

LOG_DIR_ENV = "COMPACT_IMAGE_LOG_DIR"
DEFAULT_LOG_FILE = "compact_image_{time}.log"


def setup_logging(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Union[str, Path, None] = None,
) -> Optional[Path]:
    """ロギングの設定を行います

    ファイル出力は ``log_file`` の指定か環境変数 ``COMPACT_IMAGE_LOG_DIR`` が
    ある場合のみ有効になる。

    Returns:
        ファイル出力先のパス（ファイル出力なしの場合は None）
    """
    log_path = resolve_log_path(log_file)

    logger.remove()  # デフォルト設定を削除
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{function}</cyan>: <white>{message}</white>",
        colorize=True,
        level=console_level,
    )
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {function}: {message}",
            rotation="1 day",
            level=file_level,
        )
    return log_path


def resolve_log_path(
    log_file: Union[str, Path, None] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Optional[Path]:
    """ログファイルのパスを決定する。

    絶対パスはそのまま使い、相対パスは環境変数のディレクトリ配下
    （未設定ならカレントディレクトリ）に置く。
    """
    resolved_env = os.environ if env is None else env
    log_dir = resolved_env.get(LOG_DIR_ENV)
    if log_file is None:
        if not log_dir:
            return None
        log_file = DEFAULT_LOG_FILE
    path = Path(log_file)
    if path.is_absolute() or not log_dir:
        return path
    return Path(log_dir).expanduser() / path
