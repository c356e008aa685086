"""
Test suite for the label sheet backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_order_cache.py -v
"""
