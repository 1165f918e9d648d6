"""Core domain package for chatrecs.

Core contains parsing, verification, resume, dispatch, and merge logic without
any HTTP, LLM, or storage-specific code, keeping the business logic portable.
"""
