"""Mock interview sessions."""
