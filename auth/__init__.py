"""auth/ -- Authentication, identity and session package for MeoMeo.

Layer rule: auth/ imports stdlib, third-party libraries and core/ only.
It does NOT import from api/ or social/.
api/ imports from auth/, not the other way around.
"""
