"""okta-tables: Okta REST resources as queryable tables.

Lists users, applications, factors and policies with pagination, pushes
exact qualifiers down to the API, fans out to per-row enrichment only for
requested columns, and streams rows within a caller's row budget.
"""

__version__ = "0.1.0"
