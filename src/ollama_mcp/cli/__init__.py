"""Command-line interface for ollama-mcp."""
