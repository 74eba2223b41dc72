"""
SecuryFlex Infrastructure Layer

Storage backends, device position sources, database access and metrics.
All storage components implement the abstract interfaces in
securyflex.infrastructure.storage.backend for testability.
"""
