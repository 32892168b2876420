"""TermFinder - TF-IDF search over local text files."""
__version__ = "0.1.0"
