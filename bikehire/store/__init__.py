"""
Handles all the persistence for the application.
There are three implementations: in-memory, a local
database through tortoise, and the hosted store.
Use :func:`~bikehire.store.factory.create_store` to
pick one from a URI.
"""
