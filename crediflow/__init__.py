"""
CrediFlow - Source Package

Tells a household which bank account needs how much money, and by when,
so funds can be moved before credit-card debits land.

DESIGN PRINCIPLES:
1. AI suggests -> Human confirms -> Engine computes
2. Derived numbers are recomputed, never patched
3. Every command commits before it returns
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "CrediFlow Team"
