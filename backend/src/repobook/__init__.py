"""
RepoBook - turn GitHub repositories into AI-written books, diagrams and
mock technical interviews.
"""

__version__ = "0.1.0"
