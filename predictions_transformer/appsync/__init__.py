"""
AppSync resources for predictions fields.

- actions: action template catalog
- datasources: HTTP and Lambda data sources
- functions: pipeline function synthesis
- resolver_builder: resolver composition
"""
