"""
Rust Anthology - Test Suite

Structure:
    unit/: Unit tests for individual components
    integration/: Build and publish runs against a stand-in renderer and
        real git repositories

Running Tests:
    # Run all tests
    pytest

    # Run with coverage
    pytest --cov=config --cov=book --cov=publishing

    # Skip the integration suite
    pytest tests/unit
"""
