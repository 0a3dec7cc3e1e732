"""
Allow-list package.

Turns the ``allow`` option (``team``, ``team(role1|role2)``, comma separated)
into an immutable allow-table and applies it to resolved privileges.
"""

from .parser import AllowTable, parse_allow

__all__ = ["AllowTable", "parse_allow"]
