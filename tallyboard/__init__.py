"""
Tallyboard - reporting and aggregation service for distribution businesses.

Derives dashboard metrics, rankings, trends, aging buckets and financial
statements from record snapshots served by a RecordSource.
"""

__version__ = "0.1.0"
