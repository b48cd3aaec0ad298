"""
Adapters - Implementations of the core ports.

- clickup: ClickUp REST API clients
- cache: Memory and file caches
- config: Settings providers
"""
