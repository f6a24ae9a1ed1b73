"""
API Routes Package
==================
Route handlers live in api.py; this package holds what they share.

Modules:
  helpers  - engine/store factories, date and CSV parsing, trend payloads
"""
