"""
API Routes
==========

Route modules for the preview application.
"""
