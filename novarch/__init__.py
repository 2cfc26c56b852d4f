"""novarch: declarative package management for Arch Linux.

Core design goals:
- Folder of YAML package lists is the desired state
- Only packages novarch installed are ever removed by it
- Tracked state is only written after the package manager succeeded
- Transient download errors are retried, everything else asks first
- Bootstrap steps are idempotent and safe to re-run
"""

__all__ = []
