#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
pytest設定ファイル
共通のフィクスチャやテスト設定を定義
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from PIL import Image


@pytest.fixture
def temp_dir():
    """一時ディレクトリを作成・削除するフィクスチャ"""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def sample_images(temp_dir):
    """様々なフォーマットのサンプル画像を作成するフィクスチャ"""
    images = {}

    # JPEG画像（横長）
    jpeg_path = temp_dir / "sample.jpg"
    img = Image.new("RGB", (1200, 900), color=(255, 0, 0))
    img.save(jpeg_path, "JPEG", quality=95)
    images["jpeg"] = jpeg_path

    # PNG画像（透過あり）
    png_path = temp_dir / "sample.png"
    img = Image.new("RGBA", (640, 480), color=(0, 255, 0, 128))
    img.save(png_path, "PNG")
    images["png"] = png_path

    # WebP画像
    webp_path = temp_dir / "sample.webp"
    img = Image.new("RGB", (800, 600), color=(0, 0, 255))
    img.save(webp_path, "WEBP", quality=90)
    images["webp"] = webp_path

    # 小さい画像（リサイズ不要）
    small_path = temp_dir / "small.jpg"
    img = Image.new("RGB", (100, 100), color=(128, 128, 128))
    img.save(small_path, "JPEG")
    images["small"] = small_path

    # 縦長画像
    portrait_path = temp_dir / "portrait.jpg"
    img = Image.new("RGB", (900, 1600), color=(255, 255, 0))
    img.save(portrait_path, "JPEG")
    images["portrait"] = portrait_path

    return images


@pytest.fixture
def broken_image(temp_dir):
    """ヘッダーは正しいが画素データが途切れたJPEG"""
    source = temp_dir / "source_full.jpg"
    # ノイズ画像にしてヘッダー以降のデータ量を確保する
    Image.effect_noise((400, 300), 64).convert("RGB").save(source, "JPEG", quality=90)
    data = source.read_bytes()
    broken = temp_dir / "broken.jpg"
    broken.write_bytes(data[: len(data) // 2])
    return broken
