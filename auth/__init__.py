"""auth/ -- Identity, token and revocation package for the ride-hailing backend.

Layer rule: auth/ imports only stdlib + third-party libraries (and fastapi in
dependencies.py). It does NOT import from api/ or core/. api/ wires settings
into auth/ objects at startup, not the other way around.
"""
