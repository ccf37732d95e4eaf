"""Conversational analytics and cross-filtered dashboard for a survey dataset."""

__version__ = "1.0.0"
