"""Pydantic schemas package.

Folder intent:
  common.py       — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  doc_request.py  — REFERENCE pattern (doc request DTOs, token views, sweep result)
  upload.py       — Upload DTOs, file metadata, storage locator, upload events
"""
