"""Gentoo Zen Installer, phase 1 (Python-first, state-driven).

Core design goals:
- Resumable after a crash, power loss or Ctrl-C
- Destructive steps never repeated once recorded complete
- Configuration collected once, before anything is touched
- Centralized logging
"""

__all__ = []
