# netaudit/__init__.py
"""
Passive network audit orchestrator.
Resolves a run configuration, locates the audit instance for a capture file
or raw-log directory, selects parsers and dispatches them over the logs.

Concurrent runs sharing one log directory are not supported: every log sink
assumes a single writing process.
"""

__version__ = "1.0.0"
__author__ = "Security Team"
__all__ = ['main', 'core', 'utils']
