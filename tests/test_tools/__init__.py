"""
Test Tools Package
Tests for the tools module (schedule generator, notifications, caretaker email, prescription extraction)
"""
