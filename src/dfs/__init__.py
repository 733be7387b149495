"""Distributed filesystem client layer.

This package resolves the configured filesystem through pyarrow and
copies local files into its namespace with an overwrite check.
"""
