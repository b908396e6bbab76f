"""Command line interface for the n8n workflow converter."""
