"""
Presentation package import and export.
"""
from .pptx_reader import read_package
from .pptx_writer import ExportConfig, PackageWriter, export_filename, write_package

__all__ = [
    "ExportConfig",
    "PackageWriter",
    "export_filename",
    "read_package",
    "write_package",
]
