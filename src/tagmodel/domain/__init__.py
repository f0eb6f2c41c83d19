"""Domain layer — tag vocabulary and record shape introspection.

This layer depends only on stdlib and pydantic.
It must never import from rules, core, or config.
"""
