"""Column-family store client layer.

This package holds the connection, table administration, row
mutation and lookup, and scan cursor surfaces over pluggable backends.
"""
