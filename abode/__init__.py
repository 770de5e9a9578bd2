"""
Abode - Rental Property Data Engine

A local data-consistency engine for a small landlord's rental records:
properties, tenants, rent payments, reminders and the local user account.

Key Design Principles:
1. Every record lives in a named collection in one local store
2. Cross-entity rules (archival, cascades) are enforced above the store
3. Derived state (archival, payment status, rent totals) is always recomputed
4. Every write and auth step is audited
"""

__version__ = "0.1.0"
