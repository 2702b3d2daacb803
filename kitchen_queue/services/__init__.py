"""
                        Services Module

Contains the kitchen scheduling services and the store they run against.

Services:
    - kitchen: timing resolution, scoring, queue projection, transitions,
      aggregation
    - store: bills / order-item masters / timing records (memory or SQL)
"""
