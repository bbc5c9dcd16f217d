"""phpscope: declaration and schema indexing for large PHP codebases."""

__version__ = "0.4.0"
