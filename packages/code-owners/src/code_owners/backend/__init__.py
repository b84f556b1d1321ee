"""Ownership resolution and approval checking."""
