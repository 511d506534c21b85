"""FutureX course catalog gateway."""
