"""freshmap — dependency freshness graph for multi-repository npm projects."""

__version__ = "0.1.0"
