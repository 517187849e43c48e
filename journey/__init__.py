"""Journey: self-care progress tracking for a single household.

Packages:
- shared: database access, domain models, the program table, utilities
- services: tracking, analytics (progress + admin dashboard), companion (AI)
"""
