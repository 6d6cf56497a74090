"""Café Colombia 平台后端"""

__version__ = "0.1.0"
