"""Core ledger types for auditchain."""
