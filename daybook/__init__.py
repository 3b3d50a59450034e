"""
Daybook - Source Package

Backend core of a personal productivity app: tasks, income/expense
ledger, reminders and profiles kept in sync with a remote document store.

DESIGN PRINCIPLES:
1. Remote first, then local - nothing unpersisted is shown as durable
2. Exactly one active profile, switched atomically
3. One bad record never takes down a whole view
4. Every mutation is auditable
5. Storage and notification backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Daybook Team"
