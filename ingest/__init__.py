"""Manga archive ingestion core.

Modules:
- archive: container type detection and ZIP/RAR entry readers
- images: content sniffing and image header inspection
- extraction: entry classification and cover selection
- pages: bounded-concurrency page metadata builder
- metadata: filename-based series/chapter inference
- thumbnails: cover thumbnails
- cache: JSON result cache
- processor: end-to-end pipeline
- config: INI parsing and config object
"""
