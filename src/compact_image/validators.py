"""
設定値検証のためのユーティリティモジュール
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Union

from .errors import InvalidConfiguration


def validate_dest_dir(path: Union[str, os.PathLike, None]) -> str:
    """出力ディレクトリを検証する。既存の通常ファイルは指定できない。"""
    if path is None:
        return ""
    path_str = os.fspath(path)
    if not path_str:
        return ""
    if Path(path_str).is_file():
        raise InvalidConfiguration(
            f"出力先はディレクトリのみ指定できます（既存のファイルです）: {path_str}"
        )
    return path_str


def validate_bound(value: Any, name: str = "値") -> int:
    """最大幅・最大高さを検証する。0は「制限なし」を表す。"""
    # bool は int のサブクラスなので明示的に除外する
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{name}は整数を指定してください: {value!r}")
    if value < 0:
        raise InvalidConfiguration(f"{name}は0以上で指定してください: {value}")
    return value


def validate_quality_value(value: Any) -> int:
    """品質値の型のみ検証する。範囲の丸めは圧縮実行時に行う。"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"品質は整数を指定してください: {value!r}")
    return value


def validate_dest_name(name: Any) -> str:
    if name is None:
        return ""
    if not isinstance(name, str):
        raise InvalidConfiguration(f"出力名は文字列を指定してください: {name!r}")
    return name


def validate_path(path: Union[str, os.PathLike, None]) -> str:
    if path is None:
        return ""
    try:
        return os.fspath(path)
    except TypeError as e:
        raise InvalidConfiguration(f"入力パスが不正です: {path!r}") from e


def validate_resource_id(value: Any) -> int:
    """リソースIDの型を検証する。0以下の値は実行時に入力元エラーとなる。"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"リソースIDは整数を指定してください: {value!r}")
    return value
