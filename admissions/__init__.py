"""
Healthcare admissions cleaning pipeline.

Deduplicates admission records, resolves patient identity, assigns visit
ids and builds the analysis reports over the cleaned table.
"""

__version__ = "0.1.0"
