"""HTTP API for RepoBook."""
