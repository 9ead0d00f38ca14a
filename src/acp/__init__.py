"""Alethio CMS plugin tool.

Installs, links and removes CMS plugin packages in a host application's
plugin directory.
"""

__version__ = "0.4.0"
