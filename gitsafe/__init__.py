"""
GitSafe client core.

Registers repositories on a ledger with a confidential (encrypted) size and
reveals that size later through on-chain verified decryption.
"""

__version__ = "0.1.0"
