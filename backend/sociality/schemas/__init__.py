"""
Sociality Backend — Pydantic Schemas
=====================================

Request bodies (validated on the way in) and canonical response types
(rendered on the way out). Response types serialize with camelCase aliases,
which is the wire format the web and mobile clients consume.
"""
