"""Bundled JSON Schema contracts (envelope, settlement events, ledger snapshot)."""
