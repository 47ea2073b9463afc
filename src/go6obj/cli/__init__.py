"""
go6obj Command-Line Interface
=============================

- **go6objdump**: list the records of an object stream, with resolved
  symbols and source positions

The tool is a Click-based CLI application.
"""

__all__ = ["objdump"]
