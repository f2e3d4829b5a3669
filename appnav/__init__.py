"""Screen navigation engine for mobile UI acceptance tests."""
