"""圧縮リクエストと入力元の定義。

1回の ``compress()`` で使う設定一式を ``CompressionRequest`` にまとめる。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from .errors import InvalidConfiguration
from .validators import (
    validate_bound,
    validate_dest_dir,
    validate_dest_name,
    validate_path,
    validate_quality_value,
    validate_resource_id,
)

if TYPE_CHECKING:
    from .resolver import ResourceContext

DEFAULT_DEST_NAME = "resultImage"
DEFAULT_QUALITY = 100
MIN_QUALITY = 0
MAX_QUALITY = 100


class Origin(Enum):
    """画像の入力元の種類"""

    FILE = "file"
    RESOURCE = "resource"

    @classmethod
    def parse(cls, value: Union["Origin", str]) -> "Origin":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidConfiguration(f"未対応の入力元です: {value!r}")


class OutputFormat(Enum):
    """出力コンテナ形式"""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def extension(self) -> str:
        return _FORMAT_EXTENSIONS[self]

    @property
    def pillow_format(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: Union["OutputFormat", str]) -> "OutputFormat":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            requested = value.strip().lower().lstrip(".")
            if requested == "jpg":
                requested = "jpeg"
            try:
                return cls(requested)
            except ValueError:
                pass
        raise InvalidConfiguration(f"未対応の出力形式です: {value!r}")


_FORMAT_EXTENSIONS = {
    OutputFormat.JPEG: ".jpg",
    OutputFormat.PNG: ".png",
    OutputFormat.WEBP: ".webp",
}


@dataclass(frozen=True)
class FilePath:
    path: str


@dataclass(frozen=True)
class ResourceHandle:
    context: Optional["ResourceContext"]
    resource_id: int


SourceDescriptor = Union[FilePath, ResourceHandle]


def clamp_quality(value: int) -> int:
    """品質値を0-100に丸める。"""
    return max(MIN_QUALITY, min(MAX_QUALITY, int(value)))


@dataclass(frozen=True)
class CompressionRequest:
    """1回分の圧縮設定。

    品質は生成時には丸めず、``compress()`` の実行時に ``clamp_quality`` で
    0-100 に収める。``max_width`` / ``max_height`` の0は「制限なし」。
    """

    origin: Origin = Origin.FILE
    path: str = ""
    resource_id: int = 0
    context: Optional["ResourceContext"] = field(default=None, compare=False)
    max_width: int = 0
    max_height: int = 0
    output_format: OutputFormat = OutputFormat.JPEG
    quality: int = DEFAULT_QUALITY
    dest_dir: str = ""
    dest_name: str = DEFAULT_DEST_NAME

    def __post_init__(self) -> None:
        # frozen なので object.__setattr__ で正規化した値を書き戻す
        object.__setattr__(self, "origin", Origin.parse(self.origin))
        object.__setattr__(self, "output_format", OutputFormat.parse(self.output_format))
        object.__setattr__(self, "path", validate_path(self.path))
        object.__setattr__(self, "resource_id", validate_resource_id(self.resource_id))
        object.__setattr__(self, "max_width", validate_bound(self.max_width, "最大幅"))
        object.__setattr__(self, "max_height", validate_bound(self.max_height, "最大高さ"))
        object.__setattr__(self, "quality", validate_quality_value(self.quality))
        object.__setattr__(self, "dest_dir", validate_dest_dir(self.dest_dir))
        object.__setattr__(self, "dest_name", validate_dest_name(self.dest_name))

    @property
    def effective_quality(self) -> int:
        return clamp_quality(self.quality)

    def source(self) -> SourceDescriptor:
        """現在の入力元に対応する記述子を返す。"""
        if self.origin is Origin.RESOURCE:
            return ResourceHandle(context=self.context, resource_id=self.resource_id)
        return FilePath(self.path)

    def file_name(self) -> str:
        """``{出力名}{拡張子}`` 形式の出力ファイル名を返す。"""
        return f"{self.dest_name or DEFAULT_DEST_NAME}{self.output_format.extension}"
