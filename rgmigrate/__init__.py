"""
Resource Governor Migration

Copies SQL Server Resource Governor configuration between two instances.

Supports:
- Server-wide Resource Governor settings, including the classifier function
- Resource pools and their workload groups
- Include/exclude filtering of pools
- Drop-and-recreate of conflicting pools with --force
- Dry runs that describe every change without making it
"""

__version__ = "0.1.0"
