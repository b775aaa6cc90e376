"""Dayline Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - places/: geo helpers, resolver, label cache, place inference
  - blocks/: app usage aggregation, block builder
  - timeline/: classification, normalizer
  - patterns/: pattern insight analyzer
- integration/: Full-day synthesis, batches and insights

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/blocks/
"""
