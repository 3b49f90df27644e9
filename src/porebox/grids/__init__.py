"""Element-local geometry of the box scheme."""
