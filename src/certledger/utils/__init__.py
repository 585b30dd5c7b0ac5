"""Utility functions for certledger."""
