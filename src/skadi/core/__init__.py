"""Shared infrastructure: errors, logging and configuration."""
