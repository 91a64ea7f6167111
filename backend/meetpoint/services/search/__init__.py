"""Midpoint venue search orchestration."""

from .service import SearchOrchestrator, candidate_to_venue, rank_key

__all__ = ["SearchOrchestrator", "candidate_to_venue", "rank_key"]
