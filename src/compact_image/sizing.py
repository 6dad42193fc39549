"""縮小倍率の計算"""

from __future__ import annotations

from typing import Tuple


def calc_ratio(src_width: int, src_height: int, max_width: int, max_height: int) -> int:
    """画像を最大サイズに収めるための整数の縮小倍率を計算します。

    幅・高さの両方が上限を超えている場合のみ縮小する。倍率は2から始めて、
    どちらかの辺が上限以下になるまで1ずつ増やす（切り捨て除算で判定）。
    上限が0の辺は「制限なし」とみなし、倍率は常に1になる。

    Args:
        src_width: 元画像の幅
        src_height: 元画像の高さ
        max_width: 最大幅（0は制限なし）
        max_height: 最大高さ（0は制限なし）

    Returns:
        int: 1以上の縮小倍率
    """
    if max_width <= 0 or max_height <= 0:
        return 1

    ratio = 1
    if src_width > max_width and src_height > max_height:
        ratio = 2
        while src_width // ratio > max_width and src_height // ratio > max_height:
            ratio += 1
    return ratio


def scaled_size(width: int, height: int, ratio: int) -> Tuple[int, int]:
    """縮小倍率を適用した後のサイズを返す（各辺最低1px）。"""
    if ratio < 1:
        raise ValueError(f"縮小倍率は1以上である必要があります: {ratio}")
    return max(1, width // ratio), max(1, height // ratio)


def pixel_byte_count(width: int, height: int, bands: int = 3) -> int:
    """デコード済み画素バッファのバイト数"""
    return width * height * bands
