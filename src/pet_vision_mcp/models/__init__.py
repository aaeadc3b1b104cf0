"""Pydantic models for frames, extraction settings and analysis records."""
