"""
Tests for the resource pipeline.
"""
