"""Builders for in-memory test archives and images."""

import io
import random
import zipfile

from PIL import Image

from ingest.archive import ArchiveEntry, entry_basename


def make_image(fmt: str = "PNG", size=(10, 10), color="red", noise: bool = False) -> bytes:
    """Encode a small image in memory."""
    img = Image.new("RGB", size, color=color)
    if noise:
        rnd = random.Random(42)
        img.putdata([
            (rnd.randrange(256), rnd.randrange(256), rnd.randrange(256))
            for _ in range(size[0] * size[1])
        ])
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_truncated_png() -> bytes:
    """A PNG whose header parses but whose pixel data is cut short."""
    data = make_image("PNG", size=(64, 64), noise=True)
    return data[: int(len(data) * 0.6)]


def make_zip(entries: dict) -> bytes:
    """Build a ZIP in memory; a name ending in '/' becomes a directory."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, data)
    return buf.getvalue()


class DictReader:
    """In-memory stand-in for an archive entry reader."""

    def __init__(self, entries: dict):
        self._data = entries
        self._entries = [
            ArchiveEntry(
                entry_path=name,
                entry_name=entry_basename(name),
                size=len(data),
                is_directory=name.endswith("/"),
            )
            for name, data in entries.items()
        ]
        self.reads = []

    def list_entries(self):
        return list(self._entries)

    def read_entry(self, entry_path):
        self.reads.append(entry_path)
        return self._data[entry_path]

    def close(self):
        pass
