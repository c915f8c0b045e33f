"""
Service layer abstraction.

Each service encapsulates business logic for a domain and receives the
``Database`` it works against in its constructor, so API handlers never
touch SQL directly.
"""
