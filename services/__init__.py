"""
services/ - Business Logic Layer
================================
Validation, derivations, the recurring scheduler and exports.
Services receive repositories in their constructor and return domain
objects; formatting for the user happens in handlers/.
"""
