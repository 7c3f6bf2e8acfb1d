"""Services package — all workflow logic lives here, never in routers.

Files:
  doc_requests.py  — REFERENCE service pattern (request create / submit / cancel)
  tokens.py        — Single-use carrier token issue, resolve, revoke, reissue
  uploads.py       — Upload register / replace / decide
  audit.py         — Append-only upload event ledger
  sweeper.py       — Batch expiry of overdue requests

Rule: routers call services, services call repositories, repositories call the DB.
      Services own transaction boundaries. No FastAPI imports in services.
"""
