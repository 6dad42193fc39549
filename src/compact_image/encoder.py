"""画像のエンコードと出力ファイルへの保存。

品質・出力形式からエンコーダ設定を組み立て、メモリ上でエンコードした
バイト列を一時ファイル経由で保存する。
"""

from __future__ import annotations

import io
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from PIL import Image

from .errors import InvalidConfiguration, IOFailure
from .request import CompressionRequest, Origin, OutputFormat, clamp_quality

_WINDOWS_LONG_PATH_LIMIT = 260
_WINDOWS_RETRYABLE_CODES = {32, 33}
_NO_SPACE_CODES = {28, 112, 122}
_PATH_INVALID_CODES = {36, 80, 123, 206}
_PERMISSION_CODES = {5, 13, 30}
_NOT_FOUND_CODES = {2, 3}


def build_encoder_save_kwargs(output_format: OutputFormat, quality: int) -> Dict[str, Any]:
    """出力形式に応じたエンコーダ設定を返す。"""
    normalized_quality = clamp_quality(quality)
    if output_format is OutputFormat.JPEG:
        return {
            "format": "JPEG",
            "quality": normalized_quality,
            "optimize": True,
        }
    if output_format is OutputFormat.PNG:
        # PNGはロスレス。quality指定を圧縮レベルへ変換する。
        compress_level = int(round((100 - normalized_quality) / 100 * 9))
        return {
            "format": "PNG",
            "compress_level": max(0, min(9, compress_level)),
        }
    return {
        "format": "WEBP",
        "quality": normalized_quality,
        "method": 6,
    }


def encode_image(image: Image.Image, output_format: OutputFormat, quality: int) -> bytes:
    """画像をメモリ上でエンコードし、バイト列を返す。"""
    save_kwargs = build_encoder_save_kwargs(output_format, quality)
    with io.BytesIO() as buffer:
        image.save(buffer, **save_kwargs)
        return buffer.getvalue()


def resolve_output_path(request: CompressionRequest) -> Path:
    """出力先ディレクトリとファイル名を決定する。

    出力先が未指定の場合、ファイル入力なら元画像と同じディレクトリを使う。
    リソース入力では既定のディレクトリが存在しないため設定エラーとする。
    """
    if request.dest_dir:
        directory = Path(request.dest_dir)
    elif request.origin is Origin.FILE:
        directory = Path(request.path).parent
    else:
        raise InvalidConfiguration("リソース入力の場合は出力ディレクトリの指定が必要です")
    return directory / request.file_name()


def write_output(data: bytes, final_path: Path) -> None:
    """バイト列を一時ファイル→置換で保存し、壊れた最終ファイルを防ぐ。"""
    write_target = _normalize_windows_long_path(final_path)
    tmp_path = _build_temp_save_path(write_target)
    try:
        with open(tmp_path, "wb") as fh:
            fh.write(data)
            fh.flush()
        os.replace(str(tmp_path), str(write_target))
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                logger.warning(f"一時保存ファイルの削除に失敗: {tmp_path}")


def analyze_file_error(error: BaseException, path: Optional[Path] = None) -> IOFailure:
    """保存エラーを分類し、IOFailure に変換する。"""
    message = str(error)
    if not isinstance(error, OSError):
        return IOFailure(
            message,
            path=path,
            category="unknown",
            guidance="再試行しても解決しない場合は保存先を変更してください。",
        )

    win_error = getattr(error, "winerror", None)
    code = win_error if os.name == "nt" and win_error else error.errno
    if not isinstance(code, int):
        return IOFailure(message, path=path, guidance="保存先を変更して再試行してください。")

    if os.name == "nt" and code in _WINDOWS_RETRYABLE_CODES:
        return IOFailure(
            message,
            path=path,
            error_code=code,
            category="sharing_violation",
            retryable=True,
            guidance="他のアプリによるロックが疑われます。数秒後に再試行してください。",
        )
    if code in _NOT_FOUND_CODES:
        return IOFailure(
            message,
            path=path,
            error_code=code,
            category="not_found",
            guidance="保存先フォルダが見つかりません。保存先フォルダを確認してください。",
        )
    if code in _PERMISSION_CODES:
        return IOFailure(
            message,
            path=path,
            error_code=code,
            category="permission_denied",
            guidance="保存先の書き込み権限を確認してください。",
        )
    if code in _NO_SPACE_CODES:
        return IOFailure(
            message,
            path=path,
            error_code=code,
            category="no_space",
            guidance="保存先の空き容量不足が疑われます。空き容量を確認してください。",
        )
    if code in _PATH_INVALID_CODES:
        return IOFailure(
            message,
            path=path,
            error_code=code,
            category="path_invalid",
            guidance="ファイル名・パス文字列を確認してください。",
        )
    return IOFailure(
        message,
        path=path,
        error_code=code,
        guidance="再試行しても解決しない場合は保存先を変更してください。",
    )


def _normalize_windows_long_path(path: Path) -> Path:
    """Windowsの長いパス向けに `\\\\?\\` プレフィックスを付与する。"""
    if os.name != "nt":
        return path

    path_str = os.path.abspath(str(path))
    if path_str.startswith("\\\\?\\") or len(path_str) < _WINDOWS_LONG_PATH_LIMIT - 4:
        return Path(path_str)
    if path_str.startswith("\\\\"):
        return Path("\\\\?\\UNC\\" + path_str[2:])
    return Path("\\\\?\\" + path_str)


def _build_temp_save_path(target_path: Path) -> Path:
    """同一ディレクトリ内の一時保存パスを作る。"""
    base_name = target_path.name or "compact_output"
    token = f"{os.getpid()}_{time.time_ns()}_{uuid.uuid4().hex[:10]}"
    return target_path.with_name(f".{base_name}.{token}.tmp")
