"""
Services module for business logic separation.

This module contains service classes that encapsulate business logic,
keeping it separate from API endpoints and database models. The engagement
ledger is the only place points are written; every other service reads.
"""
