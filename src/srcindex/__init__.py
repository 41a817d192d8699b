"""
srcindex - file indexing pipeline of a source-code analysis scanner.
"""

__version__ = "0.1.0"
