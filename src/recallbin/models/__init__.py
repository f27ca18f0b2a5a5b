"""Pydantic models for items, collections, usage and configuration."""
