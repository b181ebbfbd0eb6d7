"""Hypothesis strategies for migration records."""
