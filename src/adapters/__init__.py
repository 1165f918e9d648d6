"""Adapters implementing the core ports (storage, LLM, metadata, uploads, console)."""
