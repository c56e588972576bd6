"""Adapter for a hosted backend behind the session and record interfaces."""
