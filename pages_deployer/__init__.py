"""LLM-driven single-page app generation and GitHub Pages deployment."""

__version__ = "1.0.0"
