"""Catalog triage domain."""
