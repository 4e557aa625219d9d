"""HTTP interface for the production tracking service."""
