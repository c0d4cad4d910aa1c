"""ASGI server layer: request handling, error responses, response sending."""
