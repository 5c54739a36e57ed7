"""
pylookupsync: Synchronize lookup tables with enumeration types.

This module defines dependencies required for Microsoft SQL Server.
"""

import pyodbc  # noqa: F401
