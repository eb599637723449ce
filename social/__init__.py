"""social/ -- Stories, likes, comments, shares and engagement scoring for MeoMeo.

Layer rule: social/ imports stdlib, third-party libraries and core/ only.
It does NOT import from api/ or auth/.
"""
