"""GBIF 文献检索"""

__version__ = "0.1.0"
