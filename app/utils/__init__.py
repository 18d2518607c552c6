"""Utility helpers for the Reelkeeper backend.

Submodules:
- http_client: shared httpx client factory and fetch helpers
"""

__all__: list[str] = []
