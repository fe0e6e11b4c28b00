"""Tasker utility modules."""
