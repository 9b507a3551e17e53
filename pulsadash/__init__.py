"""pulsadash: resilient request layer for the pulsa reseller dashboard.

Endpoint discovery with failover, retrying request execution, a paginated
list cache and a login attempt throttle.
"""

__version__ = "1.0.0"
