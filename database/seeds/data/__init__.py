"""Seed data definitions (constants only)."""
