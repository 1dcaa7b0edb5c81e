"""
marky
=====

Render Markdown to styled HTML pages or PDF, and keep a browser preview in
sync with the file while you edit it.

This package provides:
- Markdown compilation with themes, math, diagrams and code highlighting
- Image inlining into self-contained pages
- PDF export with browser automation
- File watching with a FastAPI/WebSocket live preview server
- A command line interface
"""

__version__ = "0.4.0"
__author__ = "marky contributors"
