"""Channel classification of changed files."""

from .classify import classify_file, classify_files, classify_path, files_in_channel, glob_matches, refine_channel

__all__ = [
    "classify_file",
    "classify_files",
    "classify_path",
    "files_in_channel",
    "glob_matches",
    "refine_channel",
]
