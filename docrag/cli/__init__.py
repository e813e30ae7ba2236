"""Command-line tools for docrag.

- ``python -m docrag.cli.ingest`` -- register, process, reprocess and batch
  files, reset stuck files, and show per-project statistics.
"""
