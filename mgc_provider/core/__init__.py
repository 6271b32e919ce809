"""Core utilities and shared infrastructure.

- config: Provider settings loading and validation
- constants: Regions, environments, header and type names
- exceptions: Custom exception hierarchy
- polling: Generic poll driver for asynchronously provisioned resources
"""
