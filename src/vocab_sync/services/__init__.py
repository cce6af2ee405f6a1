"""Reconciliation and export services for vocab-sync."""
