"""LotLedger command line interface."""
