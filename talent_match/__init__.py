"""
Talent Match core.

Two pieces of real logic live here:
- matching: deterministic candidate-to-job scoring and shortlist ranking
- analysis: single-flight asynchronous portfolio/GitHub analysis with
  improvement suggestions

Everything else (profile storage, auth, UI) is reached through the
repository interfaces in talent_match.common.repositories.
"""
