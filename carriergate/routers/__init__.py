"""Routers package — HTTP endpoint definitions.

Files:
  deps.py  — Trusted-server gate and service dependencies
  v1/      — Versioned API routes (/api/v1/*)
"""
