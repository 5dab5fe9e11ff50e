"""Mapping of retinal cell density from flatmount samples onto the eye hemisphere."""

__version__ = '0.1.0'
