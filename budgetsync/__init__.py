"""
Budget Sync - Source Package

Client-side working copies of server-owned budget collections and the
ledger projections built from them.

DESIGN PRINCIPLES:
1. Local edits are free; the server only sees the minimal diff
2. One bulk call per save
3. The server is the source of truth after a successful save
4. Failures never lose the user's edits
5. Every step is auditable
"""

__version__ = "1.0.0"
__author__ = "Budget Sync Team"
