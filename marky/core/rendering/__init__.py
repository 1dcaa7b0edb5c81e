"""
Rendering Module
===============

Markdown compilation, page assembly and export.

Components:
- markdown_renderer: Markdown to HTML body, title extraction
- html_generator: Page assembly from the Jinja2 template
- image_inliner: Embed images as data URIs
- pdf_generator: PDF export with browser automation
- pipeline: Composition of the steps above
- assets: Bundled themes and client scripts
"""
