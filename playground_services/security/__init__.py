"""Security helpers (CORS allowlist)."""
