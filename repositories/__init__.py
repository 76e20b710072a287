"""
repositories/ - Data Access Layer
==================================
Each repository wraps the REST endpoints of one domain entity.
Repositories receive raw JSON from the API client and return domain
model objects built by ``api.schema``.
"""
