"""Tests for vlr package."""


def test_package_imports():
    """Test that the package can be imported successfully."""
    import vlr

    assert vlr is not None


def test_package_version():
    """Test that the package has a version string."""
    from vlr import __version__

    assert __version__ == "0.1.0"
