"""Ledger gateway contract and the JSON-RPC implementation."""
