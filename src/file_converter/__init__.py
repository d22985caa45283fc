"""
File converter service package.

Provides a FastAPI application that converts uploaded audio, document and
image files to another format and streams the result back.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
