"""Tests for the typer CLI in main.py."""

import json

import pytest
from typer.testing import CliRunner

from helpers import make_image, make_zip
from ingest.cache import ResultCache
from ingest.config import load_config, write_default_config
from ingest.utils import storage_token
from main import app


runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    return write_default_config(tmp_path / "config.ini", tmp_path / "data")


def _cbz(tmp_path, name="One Piece - Chapter 5.cbz"):
    path = tmp_path / name
    path.write_bytes(make_zip({"001.png": make_image(), "002.png": make_image()}))
    return path


def _process(archive, config_path, *extra):
    return runner.invoke(
        app, ["process", str(archive), "--config", str(config_path), *extra]
    )


def test_process_prints_result_and_caches_it(tmp_path, config_path):
    result = _process(_cbz(tmp_path), config_path, "--id", "abc")

    assert result.exit_code == 0, result.output
    assert '"title": "One Piece"' in result.output
    cache_file = load_config(config_path).cache_dir / f"{storage_token('abc')}.json"
    doc = json.loads(cache_file.read_text(encoding="utf-8"))
    assert [p["filename"] for p in doc["value"]["pages"]] == ["001.png", "002.png"]


def test_process_user_error_exits_2(tmp_path, config_path):
    archive = tmp_path / "chapter.pdf"
    archive.write_bytes(b"%PDF-1.4")

    result = _process(archive, config_path)

    assert result.exit_code == 2
    assert "Unsupported archive format" in result.output


def test_process_internal_error_exits_1(tmp_path, config_path, monkeypatch):
    def broken_write(self, key, value):
        raise PermissionError("denied")

    monkeypatch.setattr(ResultCache, "_write", broken_write)

    result = _process(_cbz(tmp_path), config_path)

    assert result.exit_code == 1
    assert "Processing failed, try again" in result.output


def test_missing_config_points_at_init(tmp_path):
    result = _process(_cbz(tmp_path), tmp_path / "nowhere.ini")

    assert result.exit_code == 1
    assert "ingest init" in result.output


def test_cleanup_removes_orphaned_thumbnails(tmp_path, config_path):
    assert _process(_cbz(tmp_path), config_path, "--id", "abc").exit_code == 0
    thumbs = load_config(config_path).thumbnails_dir
    (thumbs / f"{storage_token('gone')}-150.webp").write_bytes(b"x")

    result = runner.invoke(app, ["cleanup", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "Removed 1 orphaned thumbnails" in result.output
    assert len(list(thumbs.iterdir())) == 2


def test_clear_cache_requires_confirm(tmp_path, config_path):
    assert _process(_cbz(tmp_path), config_path, "--id", "abc").exit_code == 0
    cache = ResultCache(load_config(config_path).cache_dir)

    refused = runner.invoke(app, ["clear-cache", "--config", str(config_path)])
    assert refused.exit_code == 1
    assert list(cache.keys()) == [storage_token("abc")]

    cleared = runner.invoke(app, ["clear-cache", "--confirm", "--config", str(config_path)])
    assert cleared.exit_code == 0
    assert "Removed 1 cache entries" in cleared.output
    assert list(cache.keys()) == []
