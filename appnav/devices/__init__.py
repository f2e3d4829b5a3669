"""Navigation models of the apps under test."""
