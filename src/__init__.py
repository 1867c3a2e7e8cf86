"""Soundbase music streaming catalog."""
