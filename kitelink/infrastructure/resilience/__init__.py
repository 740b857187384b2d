"""API Resilience Implementations.

Contains the per-category rate limiter, the error classifier and the
retry orchestrator with capped exponential backoff.
Bounded Context: API Resilience
"""
