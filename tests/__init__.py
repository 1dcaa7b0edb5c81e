"""
Test Suite
==========

Test suite matching the marky/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: Preview server tests through the ASGI test client
"""
