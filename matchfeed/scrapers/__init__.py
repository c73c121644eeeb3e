"""Scrapers package."""
