"""
Owner-scoped medical record management.

Identity resolution, the record store, the access-scoped service, and the
HTML/JSON adapters that sit on top of it.
"""
