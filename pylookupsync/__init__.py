"""
pylookupsync: Synchronize lookup tables with enumeration types.

This library discovers the enumeration types referenced by a data model, and maintains one lookup table for each
enumeration type in a relational database such that the rows of the table match the members of the enumeration.
"""

__version__ = "0.1.0"
__status__ = "Beta"
