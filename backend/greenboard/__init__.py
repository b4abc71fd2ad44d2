"""Greenboard: scheduled contribution history generator for git repositories."""

__version__ = "0.1.0"
__author__ = "Greenboard Team"

__all__ = ["__version__", "__author__"]
