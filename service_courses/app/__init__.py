"""
Courses Service package for the Academy Access Layer.

The service serves the course catalogue behind the access gateway:
- Read endpoints run through a read-through response cache
- Cache directives are registered per handler when routes are declared
- Cache store failures degrade to a miss and never fail a request

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.caching: Directive registry, key derivation, stores and gateway.
- app.catalog: Course records and the in-memory catalogue.
"""
