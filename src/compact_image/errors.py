"""圧縮パイプラインで使う例外の定義。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class CompressError(Exception):
    """compact_image が送出する例外の基底クラス。"""


class InvalidConfiguration(CompressError, ValueError):
    """設定値が不正なため、処理を開始できない。"""


class SourceUnavailable(CompressError):
    """入力元の画像を読み取れない。"""


class SourceNotFound(CompressError):
    """リゾルバが指定された入力元を見つけられない。"""


class DecodeFailure(CompressError):
    """サイズ取得後のデコードで画素データが得られなかった。"""


class IOFailure(CompressError):
    """出力ファイルの書き込みに失敗した。

    ``compress()`` からは送出されず、``CompressionResult.error`` として返される。
    """

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Path] = None,
        error_code: Optional[int] = None,
        category: str = "unknown",
        retryable: bool = False,
        guidance: str = "",
    ) -> None:
        super().__init__(message)
        self.path = path
        self.error_code = error_code
        self.category = category
        self.retryable = retryable
        self.guidance = guidance
