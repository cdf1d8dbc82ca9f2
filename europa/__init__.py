"""Sandbox development node tooling: per-block state records, workspaces, configuration and commands."""

__version__ = "0.1.0"