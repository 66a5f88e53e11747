# netaudit/core/__init__.py
"""
Core orchestration modules.
Instance location, parser selection and dispatch to the processing stage.
"""

__all__ = ['errors', 'instance', 'parsers', 'dispatcher']
