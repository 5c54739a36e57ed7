"""
pylookupsync: Synchronize lookup tables with enumeration types.

This module defines dependencies required for SQLite.
"""

import sqlite3  # noqa: F401
