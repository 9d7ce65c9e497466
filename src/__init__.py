"""Assistant function runner source package.

This package contains:
- config: Configuration loading and management
- tools: Function registry, dynamic loader, dependency installer, function author
- assistant: Run coordination, sessions and the OpenAI service adapters
- app: Wiring of the above into one application context
"""

from __future__ import annotations

__all__: list[str] = []
