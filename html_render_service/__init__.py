"""
HTML Render Service: renders HTML documents to PNG with a headless browser.
"""

__version__ = "0.1.0"
