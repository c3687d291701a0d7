"""Database layer for RepoBook."""
