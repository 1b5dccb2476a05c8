"""Pydantic domain models shared by every engine."""
