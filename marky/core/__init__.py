"""
Core Business Logic
==================

Core business logic modules for Markdown rendering and live preview.

Modules:
- errors: Error taxonomy shared by every component
- themes: Theme catalog and CSS resolution
- rendering: Markdown compilation, page assembly, image inlining, PDF export
- live: File watching, output sinks and the preview broadcaster
"""
