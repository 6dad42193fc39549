from __future__ import annotations

from pathlib import Path

import pytest

from compact_image.errors import InvalidConfiguration
from compact_image.request import (
    CompressionRequest,
    FilePath,
    Origin,
    OutputFormat,
    ResourceHandle,
    clamp_quality,
)
from compact_image.resolver import ResourceContext


def test_defaults():
    request = CompressionRequest()
    assert request.origin is Origin.FILE
    assert request.path == ""
    assert request.resource_id == 0
    assert request.context is None
    assert request.max_width == 0
    assert request.max_height == 0
    assert request.output_format is OutputFormat.JPEG
    assert request.quality == 100
    assert request.dest_dir == ""
    assert request.dest_name == "resultImage"


def test_quality_is_not_clamped_at_construction():
    request = CompressionRequest(quality=150)
    assert request.quality == 150
    assert request.effective_quality == 100
    assert CompressionRequest(quality=-20).effective_quality == 0


def test_clamp_quality():
    assert clamp_quality(-1) == 0
    assert clamp_quality(0) == 0
    assert clamp_quality(55) == 55
    assert clamp_quality(100) == 100
    assert clamp_quality(150) == 100


def test_dest_dir_pointing_to_file_is_rejected(temp_dir):
    existing = temp_dir / "already.txt"
    existing.write_text("x", encoding="utf-8")
    with pytest.raises(InvalidConfiguration):
        CompressionRequest(dest_dir=str(existing))


def test_dest_dir_accepts_directory_and_missing_path(temp_dir):
    assert CompressionRequest(dest_dir=temp_dir).dest_dir == str(temp_dir)
    missing = temp_dir / "not-yet"
    assert CompressionRequest(dest_dir=missing).dest_dir == str(missing)


@pytest.mark.parametrize("field", ["max_width", "max_height"])
def test_negative_bounds_are_rejected(field):
    with pytest.raises(InvalidConfiguration):
        CompressionRequest(**{field: -1})


@pytest.mark.parametrize("value", [1.5, "300", True, None])
def test_non_integer_bounds_are_rejected(value):
    with pytest.raises(InvalidConfiguration):
        CompressionRequest(max_width=value)


def test_invalid_configuration_is_a_value_error():
    with pytest.raises(ValueError):
        CompressionRequest(quality="high")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("jpeg", OutputFormat.JPEG),
        ("JPG", OutputFormat.JPEG),
        (".png", OutputFormat.PNG),
        ("WebP", OutputFormat.WEBP),
        (OutputFormat.PNG, OutputFormat.PNG),
    ],
)
def test_output_format_parse(value, expected):
    assert OutputFormat.parse(value) is expected


def test_output_format_parse_rejects_unknown():
    with pytest.raises(InvalidConfiguration):
        OutputFormat.parse("gif")
    with pytest.raises(InvalidConfiguration):
        CompressionRequest(output_format="bmp")


def test_output_format_extensions():
    assert OutputFormat.JPEG.extension == ".jpg"
    assert OutputFormat.PNG.extension == ".png"
    assert OutputFormat.WEBP.extension == ".webp"


def test_origin_parse():
    assert Origin.parse("FILE") is Origin.FILE
    assert Origin.parse("resource") is Origin.RESOURCE
    with pytest.raises(InvalidConfiguration):
        Origin.parse("network")


def test_source_follows_origin(temp_dir):
    context = ResourceContext(temp_dir)
    request = CompressionRequest(path="/tmp/a.jpg", resource_id=3, context=context)
    assert request.source() == FilePath("/tmp/a.jpg")

    resource_request = CompressionRequest(
        origin=Origin.RESOURCE, path="/tmp/a.jpg", resource_id=3, context=context
    )
    source = resource_request.source()
    assert isinstance(source, ResourceHandle)
    assert source.resource_id == 3
    assert source.context is context


def test_file_name_uses_default_when_empty():
    assert CompressionRequest(dest_name="").file_name() == "resultImage.jpg"
    assert CompressionRequest(dest_name=None, output_format="png").file_name() == "resultImage.png"
    assert CompressionRequest(dest_name="thumb", output_format="webp").file_name() == "thumb.webp"


def test_path_accepts_pathlike():
    assert CompressionRequest(path=Path("images") / "a.jpg").path == str(Path("images") / "a.jpg")
