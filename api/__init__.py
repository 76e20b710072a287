"""
api/ - Data Access Layer
========================
Talks to the Controle de Cartões REST backend: session handling, HTTP
transport and the mapping between backend payloads and domain models.
This layer is the lowest in the architecture and has no dependencies on
services or handlers.
"""
