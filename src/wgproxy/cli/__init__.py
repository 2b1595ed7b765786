"""Command-line interface for wgproxy."""
