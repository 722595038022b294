"""Shared domain code for the Cielo checkout relay."""
