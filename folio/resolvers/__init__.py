"""
resolvers/ - best-effort external resource resolution

Modules:
    cascade.py         - Provider descriptors and the cascading resolver
    logo_providers.py  - Brandfetch / Logo.dev / Ideogram logo chain
"""
