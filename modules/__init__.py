"""Campaign pipeline modules."""
