"""Confidential value service contract, relayer client and session guard."""
