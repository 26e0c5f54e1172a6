"""
MTM SDK Command-Line Interface
==============================

This package provides command-line tools for the MTM SDK:

- **mtmc**: Single-file compiler
- **mtmbuild**: Multi-file project build

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["mtmc", "mtmbuild"]
