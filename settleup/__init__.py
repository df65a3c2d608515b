"""
SettleUp - Source Package

Shared-expense settlement for a personal finance tracker:
who paid, who owes, and the shortest practical list of payments
that squares everyone up.

DESIGN PRINCIPLES:
1. The engine is pure: same expenses in, same transfers out
2. Money is conserved: balances always sum to zero
3. Bad expenses are skipped and reported, never silently fixed
4. Directories are injected, never read from globals
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SettleUp Team"
