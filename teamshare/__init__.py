"""Classroom file sharing service."""
