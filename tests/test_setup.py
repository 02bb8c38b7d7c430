"""Test that the project setup is working correctly."""

import activity_intel


def test_version() -> None:
    """Test that version is defined."""
    assert activity_intel.__version__ == "0.1.0"


def test_import_modules() -> None:
    """Test that all submodules can be imported."""
    from activity_intel import aggregation
    from activity_intel import context
    from activity_intel import enrichment
    from activity_intel import ingestor
    from activity_intel import pipeline

    # Just verify imports work
    assert ingestor is not None
    assert enrichment is not None
    assert aggregation is not None
    assert context is not None
    assert pipeline is not None
