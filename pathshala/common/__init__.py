"""Shared helpers: errors, dependencies, pure view state and formatting."""
