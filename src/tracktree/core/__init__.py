"""
Core module - Domain logic with no I/O.

This module contains:
- domain/: Hierarchy nodes, raw records, node factory, time entries
- ports/: Abstract interfaces that adapters must implement
- exceptions: Centralized exception hierarchy
"""
