"""Data models for RepoBook."""
