"""
Live Preview Server
===================

FastAPI application and uvicorn runner for the browser preview.

Endpoints:
- WebSocket /: rendered bodies pushed on every change
- GET /: placeholder page with the live-reload client
- GET /health: server status and broadcast version
- GET /{path}: static files beside the watched document
"""
