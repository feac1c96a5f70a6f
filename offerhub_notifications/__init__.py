"""Notification dispatch package for the OfferHub admin console.

Provides the in-memory delivery layer (priority queue, cache, circuit breaker
and performance monitor) together with the pure helpers used to compose,
route and analyse notifications.
"""
