"""
Utility functions for the sale engine.

Checked arithmetic, address validation, formatting, logging setup and
the exception taxonomy.
"""
