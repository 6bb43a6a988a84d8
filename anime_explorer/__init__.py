"""Anime Explorer web application."""
