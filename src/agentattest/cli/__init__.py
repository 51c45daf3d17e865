"""Command line interface for Agent-Attest."""
