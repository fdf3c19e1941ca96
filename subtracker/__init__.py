"""
Subscription Tracker - Source Package

A personal finance utility for keeping recurring subscriptions in view:
what they cost per month, what is due soon, and where the money goes.

DESIGN PRINCIPLES:
1. Money is Decimal, never float
2. Fail early, fail visibly
3. No silent corrections
4. Every record belongs to exactly one owner
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Subscription Tracker Team"
