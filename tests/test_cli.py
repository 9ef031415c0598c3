from __future__ import annotations

import pytest

from image_stream_gang.cli import main
from image_stream_gang.config import PipelineConfig
from image_stream_gang.core.image_fetcher import file_name_for_url


def test_cli_runs_manifest(tmp_path, image_files) -> None:
    manifest = tmp_path / "urls.txt"
    manifest.write_text("\n".join(image_files) + "\n")
    out = tmp_path / "out"

    code = main([
        "--manifest", str(manifest),
        "--output-dir", str(out),
        "--filters", "grayscale,blur:radius=1",
        "--workers", "2",
    ])

    assert code == 0
    assert (out / "grayscale" / file_name_for_url(image_files[0])).is_file()
    assert (out / "blur-1" / file_name_for_url(image_files[1])).is_file()


def test_cli_reports_failures_with_exit_code(tmp_path) -> None:
    manifest = tmp_path / "urls.txt"
    manifest.write_text((tmp_path / "missing.png").as_uri() + "\n")

    code = main(["--manifest", str(manifest), "--output-dir", str(tmp_path / "out"), "--workers", "1"])

    assert code == 1


def test_cli_missing_manifest_exits(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--manifest", str(tmp_path / "nope.txt")])

    assert exc_info.value.code == 1


def test_cli_bad_filter_exits(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--filters", "emboss", "--output-dir", str(tmp_path)])

    assert exc_info.value.code == 2


@pytest.mark.parametrize(
    "kwargs",
    [{"max_workers": 0}, {"timeout": 0}, {"batch_size": 0}],
)
def test_config_validation(kwargs) -> None:
    with pytest.raises(ValueError):
        PipelineConfig(**kwargs)


def test_cli_misspelled_filter_parameter_exits(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--filters", "blur:radus=8", "--output-dir", str(tmp_path)])

    assert exc_info.value.code == 2
    assert not (tmp_path / "blur-8").exists()
