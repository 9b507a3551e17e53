"""Domain Layer: value objects, interfaces (ports), events and errors.

Has no dependency on infrastructure; everything else depends on it.
"""
