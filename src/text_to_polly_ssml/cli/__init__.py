"""Command-line interface module for Text to Polly SSML.

This module provides the polly-ssml tool for converting and checking markup
files and for listing the supported tags.
"""

from .main import main

__all__ = ["main"]
