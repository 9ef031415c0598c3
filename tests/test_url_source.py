from __future__ import annotations

import pytest

from image_stream_gang.core.url_source import DEFAULT_URL_BATCHES, chunked, iter_manifest_batches

MANIFEST = """\
# holiday photos
https://images.example.com/a.jpg
https://images.example.com/b.jpg


https://images.example.com/c.jpg
# trailing comment
https://images.example.com/d.jpg
"""


def test_chunked_keeps_order_and_remainder() -> None:
    assert list(chunked(["a", "b", "c", "d", "e"], 2)) == [("a", "b"), ("c", "d"), ("e",)]
    assert list(chunked([], 3)) == []


def test_chunked_rejects_bad_size() -> None:
    with pytest.raises(ValueError):
        list(chunked(["a"], 0))


def test_manifest_batches_split_on_blank_lines(tmp_path) -> None:
    manifest = tmp_path / "urls.txt"
    manifest.write_text(MANIFEST)

    batches = list(iter_manifest_batches(manifest))

    assert batches == [
        ("https://images.example.com/a.jpg", "https://images.example.com/b.jpg"),
        ("https://images.example.com/c.jpg", "https://images.example.com/d.jpg"),
    ]


def test_manifest_batches_regrouped_by_size(tmp_path) -> None:
    manifest = tmp_path / "urls.txt"
    manifest.write_text(MANIFEST)

    batches = list(iter_manifest_batches(manifest, batch_size=3))

    assert [len(b) for b in batches] == [3, 1]


def test_manifest_is_read_lazily(tmp_path) -> None:
    manifest = tmp_path / "urls.txt"
    manifest.write_text(MANIFEST)

    batches = iter_manifest_batches(manifest)
    first = next(batches)
    manifest.unlink()

    assert first[0].endswith("a.jpg")
    assert next(batches)[1].endswith("d.jpg")


def test_default_batches_are_tuples_of_urls() -> None:
    assert DEFAULT_URL_BATCHES
    for batch in DEFAULT_URL_BATCHES:
        assert isinstance(batch, tuple)
        assert all(url.startswith("https://") for url in batch)
