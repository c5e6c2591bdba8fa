"""Output stage: filesystem boundary and the conflict-aware materializer."""

from cicdgen.output.filesystem import FileStat, FileSystem, LocalFileSystem
from cicdgen.output.materializer import (
    ConflictStrategy,
    DirectoryCheck,
    FileAction,
    MaterializerOptions,
    OutputConfig,
    OutputMaterializer,
    OutputResult,
    backup_path_for,
)

__all__ = [
    "FileStat",
    "FileSystem",
    "LocalFileSystem",
    "ConflictStrategy",
    "DirectoryCheck",
    "FileAction",
    "MaterializerOptions",
    "OutputConfig",
    "OutputMaterializer",
    "OutputResult",
    "backup_path_for",
]
