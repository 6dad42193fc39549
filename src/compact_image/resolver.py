"""画像の入力元を解決し、サイズ取得と縮小デコードを行う。"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Union

from loguru import logger
from PIL import Image

from .errors import SourceNotFound
from .request import FilePath, ResourceHandle, SourceDescriptor
from .sizing import pixel_byte_count, scaled_size

# 透過は白背景へ合成し、アルファなしのRGBで保持する
DECODE_MODE = "RGB"
_ALPHA_MODES = {"RGBA", "LA", "PA", "P", "RGBa", "La"}


@dataclass(frozen=True)
class ProbeResult:
    width: int
    height: int


@dataclass
class DecodedImage:
    """縮小デコード済みの画素バッファ。"""

    image: Image.Image
    width: int
    height: int

    @property
    def byte_count(self) -> int:
        return pixel_byte_count(self.width, self.height, len(self.image.getbands()))

    def close(self) -> None:
        self.image.close()


class SourceResolver(Protocol):
    def probe_dimensions(self, source: SourceDescriptor) -> ProbeResult:
        ...

    def decode_scaled(self, source: SourceDescriptor, scale: int) -> Optional[DecodedImage]:
        ...


class ResourceContext:
    """整数IDで参照する埋め込み画像リソースの表。

    ``anchor`` にはディレクトリのパスかパッケージ名を指定する。文字列の場合、
    存在するディレクトリならパス、それ以外は ``importlib.resources`` で参照する
    パッケージ名として扱う。
    """

    def __init__(
        self,
        anchor: Union[str, os.PathLike],
        resources_by_id: Optional[Mapping[int, str]] = None,
    ) -> None:
        self._anchor = anchor
        self._names: Dict[int, str] = {}
        for resource_id, name in (resources_by_id or {}).items():
            self.register(resource_id, name)

    def register(self, resource_id: int, name: str) -> int:
        if resource_id <= 0:
            raise ValueError(f"リソースIDは1以上である必要があります: {resource_id}")
        self._names[resource_id] = name
        return resource_id

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._names

    def open_resource(self, resource_id: int) -> bytes:
        """リソースの生バイト列を返す。"""
        name = self._names.get(resource_id)
        if name is None:
            raise SourceNotFound(f"リソースIDが登録されていません: {resource_id}")
        try:
            return self._root().joinpath(name).read_bytes()
        except (OSError, ModuleNotFoundError) as e:
            raise SourceNotFound(f"リソースを読み込めません: {name} ({e})") from e

    def _root(self):
        if isinstance(self._anchor, os.PathLike) or Path(self._anchor).is_dir():
            return Path(self._anchor)
        return resources.files(self._anchor)


class PillowSourceResolver:
    """Pillow を使った標準のリゾルバ"""

    def probe_dimensions(self, source: SourceDescriptor) -> ProbeResult:
        """画素をデコードせずに元画像のサイズを取得する。"""
        with self._open(source) as img:
            width, height = img.size
        logger.debug(f"サイズ取得: {_describe(source)} -> {width}x{height}")
        return ProbeResult(width=width, height=height)

    def decode_scaled(self, source: SourceDescriptor, scale: int) -> Optional[DecodedImage]:
        """1/scale の解像度でデコードする。画素データを得られない場合は None。"""
        with self._open(source) as img:
            target = scaled_size(img.width, img.height, scale)
            if scale > 1:
                # JPEG はデコード時にDCTスケーリングで縮小される（他形式では無視される）
                img.draft(DECODE_MODE, target)
            try:
                img.load()
            except (OSError, ValueError) as e:
                logger.warning(f"画素データのデコードに失敗しました: {_describe(source)} ({e})")
                return None
            decoded = _to_decode_mode(img)

        if decoded.size != target:
            resized = decoded.resize(target, Image.Resampling.LANCZOS)
            decoded.close()
            decoded = resized
        return DecodedImage(image=decoded, width=decoded.width, height=decoded.height)

    def _open(self, source: SourceDescriptor) -> Image.Image:
        if isinstance(source, ResourceHandle):
            if source.context is None:
                raise SourceNotFound("リソースの参照にはコンテキストが必要です")
            stream = io.BytesIO(source.context.open_resource(source.resource_id))
            return _open_image(stream, _describe(source))
        if isinstance(source, FilePath):
            if not source.path:
                raise SourceNotFound("入力パスが空です")
            return _open_image(source.path, source.path)
        raise SourceNotFound(f"未対応の入力元です: {source!r}")


def _open_image(fp, label: str) -> Image.Image:
    try:
        return Image.open(fp)
    except OSError as e:
        # UnidentifiedImageError も OSError のサブクラス
        raise SourceNotFound(f"画像を開けません: {label} ({e})") from e


def _to_decode_mode(img: Image.Image) -> Image.Image:
    if img.mode in _ALPHA_MODES or "transparency" in img.info:
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        background.alpha_composite(rgba)
        rgba.close()
        decoded = background.convert(DECODE_MODE)
        background.close()
        return decoded
    return img.convert(DECODE_MODE)


def _describe(source: SourceDescriptor) -> str:
    if isinstance(source, ResourceHandle):
        return f"resource:{source.resource_id}"
    return str(getattr(source, "path", source))
