"""
pylookupsync: Synchronize lookup tables with enumeration types.

This module defines dependencies required for PostgreSQL.
"""

import asyncpg  # noqa: F401
