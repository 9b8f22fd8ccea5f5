"""Markdown checklist tasks synchronized with a node/edge board."""
