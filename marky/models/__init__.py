"""
Data Models
===========

Pydantic models for documents, render options, themes and server responses.
"""
