"""
Request Schemas
===============

Pydantic models validating inbound JSON bodies. Routes and services call
``Model.model_validate(body)``; ``pydantic.ValidationError`` is translated
into the hub's ``ValidationError`` by ``app.utils.http.safe_route``.
"""
