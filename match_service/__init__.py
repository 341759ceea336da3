"""Package marker for the match service (FastAPI surface over talent_match)."""
