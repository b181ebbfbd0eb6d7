"""Pipeline stages: backend clients, sources, transforms and sinks."""
