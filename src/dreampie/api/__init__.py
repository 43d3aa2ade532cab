"""Dream Pie — FastAPI REST API layer.

Modules
-------
main
    FastAPI application factory, routes, and the ``main()`` CLI entry point.
models
    Pydantic models for the proxy's request and response bodies.
proxy
    The provider-agnostic proxy handler.
"""
