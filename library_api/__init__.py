"""Book library REST API."""
