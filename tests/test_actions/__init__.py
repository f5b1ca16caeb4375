"""
Test Actions Package
Tests for the reminder engine and quick-confirm guard
"""
