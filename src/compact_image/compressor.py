"""画像圧縮のコア機能モジュール

入力画像のサイズ取得 → 縮小倍率の計算 → 縮小デコード → エンコード・保存
の4段階を順に実行する。

``ImageCompressor`` はビルダー形式のセッターで設定を組み立て、``compress()``
で実行する。実行後は成功・失敗に関わらず設定が既定値へ戻るため、同じ
インスタンスを次の画像にそのまま使える。

セッターはロックされない。実行中の ``compress()`` と並行して設定を変更しない
ことは呼び出し側の責任とする。
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from loguru import logger

from .encoder import analyze_file_error, encode_image, resolve_output_path, write_output
from .errors import DecodeFailure, IOFailure, SourceNotFound, SourceUnavailable
from .request import (
    CompressionRequest,
    FilePath,
    Origin,
    OutputFormat,
    ResourceHandle,
    SourceDescriptor,
)
from .resolver import (
    DecodedImage,
    PillowSourceResolver,
    ProbeResult,
    ResourceContext,
    SourceResolver,
    _describe,
)
from .sizing import calc_ratio


class RunState(Enum):
    IDLE = "idle"
    PROBING = "probing"
    DECODING = "decoding"
    ENCODING = "encoding"
    PERSISTING = "persisting"


@dataclass(frozen=True)
class CompressionResult:
    success: bool
    output_path: Path
    output_format: OutputFormat
    quality: int
    ratio: int = 1
    source_size: Tuple[int, int] = (0, 0)
    output_size: Tuple[int, int] = (0, 0)
    byte_count: int = 0
    error: Optional[IOFailure] = None

    def raise_for_error(self) -> None:
        """保存に失敗していた場合は IOFailure を送出する。"""
        if self.error is not None:
            raise self.error


class ImageCompressor:
    """画像をリサイズ・再エンコードして保存する"""

    def __init__(self, resolver: Optional[SourceResolver] = None) -> None:
        self._resolver: SourceResolver = resolver or PillowSourceResolver()
        # compress() と reset() を相互排他にするための実行ロック
        self._run_lock = threading.RLock()
        self._pending = CompressionRequest()
        self._state = RunState.IDLE

    @property
    def pending(self) -> CompressionRequest:
        """セッターで組み立て中のリクエスト"""
        return self._pending

    @property
    def state(self) -> RunState:
        return self._state

    # ------------------------------------------------------------------
    # 設定
    # ------------------------------------------------------------------
    def set_origin(self, origin: Union[Origin, str]) -> "ImageCompressor":
        self._pending = replace(self._pending, origin=Origin.parse(origin))
        return self

    def set_origin_path(self, path: Union[str, os.PathLike]) -> "ImageCompressor":
        self._pending = replace(self._pending, path=path)
        return self

    def set_resource_id(self, resource_id: int) -> "ImageCompressor":
        self._pending = replace(self._pending, resource_id=resource_id)
        return self

    def with_context(self, context: ResourceContext) -> "ImageCompressor":
        self._pending = replace(self._pending, context=context)
        return self

    def set_max_width(self, max_width: int) -> "ImageCompressor":
        self._pending = replace(self._pending, max_width=max_width)
        return self

    def set_max_height(self, max_height: int) -> "ImageCompressor":
        self._pending = replace(self._pending, max_height=max_height)
        return self

    def set_output_format(self, output_format: Union[OutputFormat, str]) -> "ImageCompressor":
        self._pending = replace(self._pending, output_format=OutputFormat.parse(output_format))
        return self

    def set_quality(self, quality: int) -> "ImageCompressor":
        """品質を設定する。範囲外の値は実行時に0-100へ丸められる。"""
        self._pending = replace(self._pending, quality=quality)
        return self

    def set_dest_dir(self, dest_dir: Union[str, os.PathLike]) -> "ImageCompressor":
        """出力ディレクトリを設定する。既存ファイルを指すと InvalidConfiguration。"""
        self._pending = replace(self._pending, dest_dir=dest_dir)
        return self

    def set_dest_name(self, dest_name: Optional[str]) -> "ImageCompressor":
        self._pending = replace(self._pending, dest_name=dest_name)
        return self

    # ------------------------------------------------------------------
    # 実行
    # ------------------------------------------------------------------
    def compress(self, request: Optional[CompressionRequest] = None) -> CompressionResult:
        """画像を圧縮して保存する。

        Args:
            request: 実行する設定。省略時はセッターで組み立てた設定を使う。

        Returns:
            CompressionResult: 保存に失敗した場合は ``success=False`` と ``error`` を持つ

        Raises:
            InvalidConfiguration: 出力先を決定できない
            SourceUnavailable: 入力元を読み取れない
            DecodeFailure: 画素データを取得できない
        """
        with self._run_lock:
            run_request = request if request is not None else self._pending
            try:
                return self._run(run_request)
            finally:
                self.reset()

    def reset(self) -> None:
        """すべての設定を既定値に戻す。"""
        with self._run_lock:
            self._pending = CompressionRequest()
            self._state = RunState.IDLE

    def _run(self, request: CompressionRequest) -> CompressionResult:
        source = _require_source(request)
        output_path = resolve_output_path(request)
        quality = request.effective_quality
        if quality != request.quality:
            logger.debug(f"品質を丸めました: {request.quality} -> {quality}")

        self._enter(RunState.PROBING)
        try:
            probe = self._resolver.probe_dimensions(source)
        except SourceNotFound as e:
            raise SourceUnavailable(str(e)) from e

        ratio = calc_ratio(probe.width, probe.height, request.max_width, request.max_height)
        logger.debug(
            f"縮小倍率: {ratio} (元サイズ={probe.width}x{probe.height}, "
            f"上限={request.max_width}x{request.max_height})"
        )

        self._enter(RunState.DECODING)
        try:
            decoded = self._resolver.decode_scaled(source, ratio)
        except SourceNotFound as e:
            raise SourceUnavailable(str(e)) from e
        if decoded is None:
            raise DecodeFailure(f"画素データを取得できませんでした: {_describe(source)}")

        try:
            return self._encode_and_persist(request, decoded, output_path, quality, ratio, probe)
        finally:
            decoded.close()

    def _encode_and_persist(
        self,
        request: CompressionRequest,
        decoded: DecodedImage,
        output_path: Path,
        quality: int,
        ratio: int,
        probe: ProbeResult,
    ) -> CompressionResult:
        logger.debug(
            f"デコード完了: {decoded.width}x{decoded.height} ({decoded.byte_count} bytes)"
        )

        self._enter(RunState.ENCODING)
        data = encode_image(decoded.image, request.output_format, quality)
        byte_count = len(data)

        self._enter(RunState.PERSISTING)
        error: Optional[IOFailure] = None
        try:
            write_output(data, output_path)
        except OSError as e:
            error = analyze_file_error(e, output_path)
            logger.error(f"画像保存エラー ({output_path}): {e} [{error.category}]")
        finally:
            del data

        if error is None:
            logger.info(
                f"保存完了: {output_path} ({decoded.width}x{decoded.height}, "
                f"{request.output_format.name}, 品質={quality}, {byte_count} bytes)"
            )
        return CompressionResult(
            success=error is None,
            output_path=output_path,
            output_format=request.output_format,
            quality=quality,
            ratio=ratio,
            source_size=(probe.width, probe.height),
            output_size=(decoded.width, decoded.height),
            byte_count=byte_count,
            error=error,
        )

    def _enter(self, state: RunState) -> None:
        logger.debug(f"状態遷移: {self._state.value} -> {state.value}")
        self._state = state


def _require_source(request: CompressionRequest) -> SourceDescriptor:
    """入力元の設定が揃っているか確認する。"""
    source = request.source()
    if isinstance(source, FilePath):
        if not source.path:
            raise SourceUnavailable("入力パスが設定されていません")
        return source
    if isinstance(source, ResourceHandle):
        if source.context is None:
            raise SourceUnavailable("リソース入力にはコンテキストが必要です")
        if source.resource_id <= 0:
            raise SourceUnavailable(f"リソースIDが不正です: {source.resource_id}")
        return source
    raise SourceUnavailable(f"入力元が設定されていません: {request.origin!r}")


_shared_compressor: Optional[ImageCompressor] = None
_shared_lock = threading.Lock()


def get_compressor() -> ImageCompressor:
    """プロセス共有の ImageCompressor を返す（初回呼び出し時に生成）。"""
    global _shared_compressor
    with _shared_lock:
        if _shared_compressor is None:
            _shared_compressor = ImageCompressor()
        return _shared_compressor
