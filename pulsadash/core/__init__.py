"""Core Application Layer: Orchestrates use cases and application logic.

Connects the domain layer with the infrastructure layer: screens fetch
through the executor and feed results into the cache or the throttle.
"""
