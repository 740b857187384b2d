"""Caching Service Implementation.

Provides the in-memory TTL response cache that sits in front of the
retry orchestrator for slow-changing reads (instrument dumps).
Bounded Context: Cache Management
"""
