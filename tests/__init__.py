"""
MediCare Reminder Test Suite
============================

Test Structure:
- test_api/: API endpoint tests for FastAPI routes
- test_services/: Service tests against an in-memory database
- test_actions/: Reminder engine and quick-confirm guard
- test_tools/: Schedule generator, notifications, caretaker email, prescription extraction
- conftest.py: Shared pytest fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_api/

    # Run only API tests
    pytest -m "api"
"""
