"""Command-line interface for Corpse Beats."""
