"""HTTP API for building and browsing workflow templates."""
