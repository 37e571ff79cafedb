"""
Business logic services package.

WHY: Services contain the finance rules separated from API routes and data
access, following the three-layer architecture (API → Service → DAO).
"""
