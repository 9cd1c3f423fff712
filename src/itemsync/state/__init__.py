"""State layer.

The cache mirrored to consumers and the typed events producers publish.
Only the controller mutates the cache.
"""
