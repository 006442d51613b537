"""Heuristic website analysis engine (SEO, privacy, media)."""
