"""v1 router package — all /api/v1/* endpoints live here.

Files:
  doc_requests.py  — REFERENCE router pattern (trusted server: requests, tokens)
  uploads.py       — Trusted server: register, decide, notes, history
  maintenance.py   — Trusted server: expiry sweep trigger
  carrier.py       — Token holder: resolve only

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to carriergate/services/.
      Carrier routes never expose anything beyond token resolution.
"""
