"""Quiz domain services: ciphers, question generation, sessions, storage.

Everything here is transport-agnostic; the Socket.IO handlers and HTTP
blueprints call into these modules and never the other way round.
"""
