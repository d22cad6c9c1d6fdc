"""
Core modules for the suggestion engine.

This package contains quota accounting, relevance scoring,
personalization, provider selection, generation and batch orchestration.
"""
