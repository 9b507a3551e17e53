"""API Resilience Implementations.

Contains endpoint discovery with failover, request execution with retries
and exponential backoff, caller cancellation, and the login attempt throttle.
Bounded Context: API Resilience
"""
