"""Small shared helpers for calbridge."""
