"""Statutory heir determination and inheritance tax estimates for Japanese estates."""
