"""PyProjector Config — typed configuration properties."""
