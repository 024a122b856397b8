"""
ArenaGuard - HTTP API
=====================

FastAPI surface over the service layer.

Run with: uvicorn arenaguard.api.app:app
"""
