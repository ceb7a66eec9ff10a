"""Trivia image curation service."""
