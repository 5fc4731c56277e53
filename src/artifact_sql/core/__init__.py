"""Shared types, errors and enumerations."""
