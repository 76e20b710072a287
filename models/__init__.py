"""
models/ - Domain Layer
======================
Plain dataclasses describing people, installment loans, expenses and
recurring expense templates. No I/O happens here.
"""
