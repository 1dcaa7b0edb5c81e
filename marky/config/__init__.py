"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Application settings (theme config directory, preview server, browser)
- logging: Structured logging configuration
"""
