"""HTTP API for the wallet service."""
