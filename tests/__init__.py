"""
Reminder Service Tests

Running Tests:
    # Run all tests
    pytest tests -v

    # Run one module
    pytest tests/unit/test_orchestrator.py -v

Unit tests use mocked email, SMS and push providers. Store and
orchestrator tests run against a temporary SQLite database (aiosqlite).
"""
