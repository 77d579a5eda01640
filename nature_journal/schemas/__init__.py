"""Pydantic data contracts shared by services and handlers."""
