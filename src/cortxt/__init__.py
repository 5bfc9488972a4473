"""
cortxt - turn a project directory into AI-ready context.

This package scans a directory tree, filters out ignored, binary and
oversized files, and renders the remaining sources into a single text
blob sized to fit an assistant's context window.
"""

__version__ = "1.0.0"
__author__ = "Cortxt Team"
