# netaudit/utils/__init__.py
"""
Shared utilities: configuration resolution, logging and input validation.
"""

__all__ = ['config_loader', 'logging_utils', 'validators']
