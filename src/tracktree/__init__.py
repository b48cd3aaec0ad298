"""
tracktree - Mirror a ClickUp work hierarchy into a local tree and track time against it.
"""

__version__ = "0.4.0"
