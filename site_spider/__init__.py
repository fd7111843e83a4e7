# site_spider/__init__.py
"""
SiteSpider package initializer.
Defines package version and exposes CLI.
"""
__version__ = "0.1.0"

from .cli import cli  # экспорт для pytest и console_scripts

__all__ = ["__version__", "cli"]
