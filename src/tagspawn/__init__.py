"""
tagspawn - slot resolution and spawn orchestration.

File: src/tagspawn/__init__.py

Purpose
- Package root. Resolves placement specifications (relative, absolute, named)
  into window-manager workspace slots and launches application resources into
  them, returning one structured response per invocation.

Import boundary rules
- No side effects at import time (no config loading, no logging init).
- Heavy submodules are imported by callers, not re-exported here.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
