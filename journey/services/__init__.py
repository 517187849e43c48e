"""Journey services.

- tracking_service: check-ins, accommodation log, reflections, journal, tasks
- analytics_service: progress aggregation and the admin monitoring dashboard
- companion_service: AI affirmations, feedback, summaries and chat

All services hash subject identifiers with hash_pii() before logging.
"""
