"""Exporter SPI and implementations."""

from .base import BaseExporter
from .file_exporter import FileExporter, slugify_identity

__all__ = ["BaseExporter", "FileExporter", "slugify_identity"]
