"""Backend services for the directortax engine."""
