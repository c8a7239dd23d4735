# site_lens/crawler/__init__.py
"""Crawl machinery: URL handling, extraction, frontier, render backends, workers."""
