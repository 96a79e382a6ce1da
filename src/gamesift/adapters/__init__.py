"""Adapters connecting the triage domain to IGDB, storage and files."""
