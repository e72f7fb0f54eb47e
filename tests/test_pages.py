"""Tests for the bounded-concurrency page metadata builder."""

import asyncio
import threading
import time

import pytest

from helpers import DictReader, make_image, make_truncated_png
from ingest import pages as pages_module
from ingest.errors import InvalidPageError
from ingest.extraction import summarize_entries
from ingest.images import inspect_image
from ingest.pages import build_page_metadata


ALLOWED = ("jpg", "jpeg", "png")


def _build(entries: dict, concurrency: int = 2):
    reader = DictReader(entries)

    async def run():
        summary = await summarize_entries(reader, reader.list_entries(), ALLOWED)
        return summary, await build_page_metadata(reader, summary, concurrency)

    return asyncio.run(run())


def test_pages_follow_summary_order_with_final_indices():
    png = make_image("PNG", size=(20, 30))
    summary, pages = _build({"p10.png": png, "p2.png": png, "p1.png": png})

    assert [p.filename for p in pages] == ["p1.png", "p2.png", "p10.png"]
    assert [p.index for p in pages] == [0, 1, 2]
    assert all((p.width, p.height, p.format) == (20, 30, "png") for p in pages)
    assert pages[0].size == len(png)
    assert pages[0].mime_type == "image/png"
    assert len(pages[0].sha256) == 64


def test_exactly_one_page_is_cover():
    jpg = make_image("JPEG")
    _, pages = _build({"page-01.jpg": jpg, "page-02.jpg": jpg, "cover.jpg": jpg})

    covers = [p for p in pages if p.is_cover]
    assert [p.filename for p in covers] == ["cover.jpg"]


def test_invalid_page_fails_the_whole_build():
    entries = {
        "page-1.png": make_image("PNG"),
        "page-2.png": make_truncated_png(),
        "page-3.png": make_image("PNG"),
    }

    with pytest.raises(InvalidPageError) as excinfo:
        _build(entries)
    assert excinfo.value.entry_name == "page-2.png"


def test_no_more_than_concurrency_decodes_in_flight(monkeypatch):
    lock = threading.Lock()
    state = {"current": 0, "peak": 0, "calls": 0}

    def slow_inspect(data):
        with lock:
            state["current"] += 1
            state["calls"] += 1
            state["peak"] = max(state["peak"], state["current"])
        time.sleep(0.05)
        with lock:
            state["current"] -= 1
        return inspect_image(data)

    monkeypatch.setattr(pages_module, "inspect_image", slow_inspect)

    png = make_image("PNG")
    entries = {f"page-{i}.png": png for i in range(1, 11)}
    _, pages = _build(entries, concurrency=2)

    assert len(pages) == 10
    assert state["calls"] == 10
    assert 1 <= state["peak"] <= 2
