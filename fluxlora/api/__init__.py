"""
HTTP layer: request/response primitives, envelope, middleware and handlers
"""
