from __future__ import annotations

import dataclasses

import pytest
from PIL import Image as PILImage

from image_stream_gang.core.errors import FilterError
from image_stream_gang.core.filters import TRANSFORMS, FilterInvoker, FilterSpec, parse_filter_specs
from image_stream_gang.core.image import Image
from image_stream_gang.core.image_fetcher import file_name_for_url


def make_image(url="https://images.example.com/cat.png", mode="RGB", size=(6, 4)):
    color = (120, 80, 40, 128) if mode == "RGBA" else (120, 80, 40)
    return Image(source_url=url, pixels=PILImage.new(mode, size, color))


def test_parse_filter_specs_names_parameterised_filters() -> None:
    specs = parse_filter_specs("grayscale, blur:radius=4 ,sepia")

    assert [s.name for s in specs] == ["grayscale", "blur-4", "sepia"]
    assert specs[1].kind == "blur"
    assert specs[1].param_dict() == {"radius": 4.0}


def test_parse_filter_specs_allows_same_kind_with_different_params() -> None:
    specs = parse_filter_specs("blur:radius=1,blur:radius=5")

    assert [s.name for s in specs] == ["blur-1", "blur-5"]


@pytest.mark.parametrize(
    "text, message",
    [
        ("grayscale,emboss", "Unknown filter kind"),
        ("grayscale,grayscale", "Duplicate filter"),
        ("blur:radius", "Invalid filter parameter"),
        ("blur:radus=8", "Unknown parameter"),
        ("sharpen:amount=2", "Unknown parameter"),
        ("blur:radius=big", "must be numeric"),
    ],
)
def test_parse_filter_specs_rejects_bad_input(text, message) -> None:
    with pytest.raises(ValueError, match=message):
        parse_filter_specs(text)


def test_filter_spec_is_hashable_and_immutable() -> None:
    a = FilterSpec.of("blur", radius=3)
    b = FilterSpec.of("blur", radius=3)

    assert a == b
    assert len({a, b}) == 1
    with pytest.raises(dataclasses.FrozenInstanceError):
        a.name = "other"


@pytest.mark.parametrize("kind", sorted(TRANSFORMS))
def test_every_filter_stores_output_without_touching_source(tmp_path, kind) -> None:
    image = make_image()
    before = image.pixels.tobytes()
    invoker = FilterInvoker(tmp_path)

    outcome = invoker.apply(FilterSpec.of(kind), image)

    assert outcome.output_path == tmp_path / kind / file_name_for_url(image.source_url)
    assert outcome.filter_name == kind
    assert outcome.source_url == image.source_url
    with PILImage.open(outcome.output_path) as stored:
        assert stored.size == (6, 4)
    assert image.pixels.tobytes() == before


def test_grayscale_output_is_single_band(tmp_path) -> None:
    outcome = FilterInvoker(tmp_path).apply(FilterSpec.of("grayscale"), make_image())

    with PILImage.open(outcome.output_path) as stored:
        assert stored.mode == "L"


def test_alpha_image_is_flattened_for_jpeg_output(tmp_path) -> None:
    image = make_image(url="https://images.example.com/photo.jpg", mode="RGBA")

    outcome = FilterInvoker(tmp_path).apply(FilterSpec.of("null"), image)

    with PILImage.open(outcome.output_path) as stored:
        assert stored.format == "JPEG"
        assert stored.mode == "RGB"


def test_invoker_reuses_one_output_filter_per_spec(tmp_path) -> None:
    invoker = FilterInvoker(tmp_path)
    spec = FilterSpec.of("sharpen")

    assert invoker.filter_for(spec) is invoker.filter_for(FilterSpec.of("sharpen"))


def test_persistence_failure_raises_filter_error(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")
    invoker = FilterInvoker(blocker)

    with pytest.raises(FilterError) as exc_info:
        invoker.apply(FilterSpec.of("null"), make_image())

    assert exc_info.value.filter_name == "null"
    assert exc_info.value.url == "https://images.example.com/cat.png"


def test_filter_spec_rejects_unknown_parameter() -> None:
    with pytest.raises(ValueError, match="radus"):
        FilterSpec.of("blur", radus=8)

    assert FilterSpec.of("blur", radius=8).param_dict() == {"radius": 8.0}


def test_blur_radius_reaches_the_transform(tmp_path) -> None:
    image = Image(source_url="https://images.example.com/edge.png", pixels=PILImage.new("L", (21, 1), 0))
    image.pixels.putpixel((10, 0), 255)
    invoker = FilterInvoker(tmp_path)

    narrow, wide = (
        invoker.apply(spec, image) for spec in parse_filter_specs("blur:radius=1,blur:radius=6")
    )

    with PILImage.open(narrow.output_path) as a, PILImage.open(wide.output_path) as b:
        assert a.getpixel((10, 0)) > b.getpixel((10, 0))


def test_same_basename_from_different_urls_stored_separately(tmp_path) -> None:
    invoker = FilterInvoker(tmp_path)
    spec = FilterSpec.of("null")
    first = Image("https://a.example.com/x/img.png", PILImage.new("RGB", (4, 4), "red"))
    second = Image("https://b.example.com/y/img.png", PILImage.new("RGB", (9, 9), "blue"))

    paths = [invoker.apply(spec, image).output_path for image in (first, second)]

    assert paths[0] != paths[1]
    with PILImage.open(paths[0]) as a, PILImage.open(paths[1]) as b:
        assert a.size == (4, 4)
        assert b.size == (9, 9)


def test_failed_save_leaves_no_output_behind(tmp_path, monkeypatch) -> None:
    def broken_save(self, fp, format=None, **params):
        with open(fp, "wb") as f:
            f.write(b"partial")
        raise OSError("disk full")

    monkeypatch.setattr(PILImage.Image, "save", broken_save)
    image = make_image()

    with pytest.raises(FilterError, match="disk full"):
        FilterInvoker(tmp_path).apply(FilterSpec.of("null"), image)

    assert list((tmp_path / "null").iterdir()) == []
