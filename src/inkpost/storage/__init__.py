"""Persistence: key-value media and the record store built on them."""
