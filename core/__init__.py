# Core package - foundational components
#
# Modules:
# - config: Application settings
# - logging: Structured logging
# - storage: File-backed record store (users, posts, refresh tokens)
