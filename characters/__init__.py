"""characters/ -- The role-gated "characters" resource.

Layer rule: characters/ imports only stdlib and core/.
It does NOT import from api/ or auth/. Access control is applied by the
routes in api/routes/characters.py, not by the store.
"""
