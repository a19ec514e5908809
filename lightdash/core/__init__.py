"""Core data layer: database, projects, access control and services."""
