"""
Live Module
===========

Keeps rendered output in sync with a source file.

Components:
- watcher: Observe a file and recompile on content changes
- sinks: Write pages to disk or publish bodies to preview clients
- broadcaster: Latest-value channel shared with the preview server
"""
