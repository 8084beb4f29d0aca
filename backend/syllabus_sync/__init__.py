"""Syllabus upload, extraction and assignment sync service."""
