"""Typed records shared across the review pipeline."""
